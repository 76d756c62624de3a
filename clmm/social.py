"""Social media sentiment analysis layered on the TWAP protection checks."""

from collections import deque
from dataclasses import dataclass, field
from itertools import combinations
from typing import Deque, Iterable, List, Optional, Sequence

from .errors import CLMMError, ErrorCode
from .mev_protection import MevConfig, calculate_twap, validate_twap_vs_spot
from .tick_math import U256_MAX

_U32_MAX = (1 << 32) - 1

POSITIVE_SENTIMENT = 10
NEGATIVE_SENTIMENT = -10
MANIPULATION_BLOCK_THRESHOLD = 0.7
INFLUENCER_HYPE_COUNT = 10
INFLUENCER_HYPE_SENTIMENT = 40.0
INFLUENCER_HYPE_MAX_DEVIATION_BPS = 500


@dataclass
class SocialMediaConfig:
    """Settings for social media monitoring."""

    twitter_enabled: bool
    sentiment_threshold: int
    volume_threshold: int
    influencer_threshold: int
    monitoring_window: int
    keywords: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SocialMediaData:
    """A single social media post."""

    timestamp: int
    platform: str
    author: str
    author_followers: int
    content: str
    sentiment_score: int
    retweets: int = 0
    likes: int = 0
    mentions: List[str] = field(default_factory=list)
    hashtags: List[str] = field(default_factory=list)
    urls: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SocialMediaMetrics:
    """Aggregated metrics over recent posts."""

    total_volume: int = 0
    average_sentiment: float = 0.0
    positive_ratio: float = 0.0
    negative_ratio: float = 0.0
    influencer_activity: int = 0
    spam_score: float = 0.0
    manipulation_probability: float = 0.0


@dataclass(frozen=True)
class SocialMevReport:
    """Combined price and social media protection report."""

    timestamp: int
    twap_price: int
    spot_price: int
    price_deviation_bps: int
    oracle_observations_count: int
    social_media_metrics: Optional[SocialMediaMetrics]
    protection_enabled: bool
    social_protection_enabled: bool


def _checked(value: int) -> int:
    if not 0 <= value <= U256_MAX:
        raise CLMMError(ErrorCode.MATH_OVERFLOW)
    return value


def _deviation_bps(price: int, reference: int) -> int:
    if reference == 0:
        raise CLMMError(ErrorCode.MATH_OVERFLOW)
    return _checked(abs(price - reference) * 10000) // reference


def social_media_config() -> SocialMediaConfig:
    """Default social media monitoring settings."""
    return SocialMediaConfig(
        twitter_enabled=True,
        sentiment_threshold=20,
        volume_threshold=100,
        influencer_threshold=10000,
        monitoring_window=3600,
        keywords=["pump", "moon", "rug", "scam", "buy", "sell"],
    )


def text_similarity(text1: str, text2: str) -> float:
    """Jaccard index of the case-folded word sets of two texts."""
    words1 = set(text1.lower().split())
    words2 = set(text2.lower().split())
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def _spam_score(posts: Sequence[SocialMediaData]) -> float:
    total = len(posts)
    if total < 2:
        return 0.0

    indicators = 0
    similar_pairs = sum(
        1
        for first, second in combinations(posts, 2)
        if text_similarity(first.content, second.content) > 0.8
    )
    if similar_pairs / total > 0.3:
        indicators += 1

    shouting = 0
    for post in posts:
        upper = sum(1 for char in post.content if char.isupper())
        if upper / max(len(post.content.encode("utf-8")), 1) > 0.7:
            shouting += 1
    if shouting / total > 0.4:
        indicators += 1

    return min(indicators / 2.0, 1.0)


def _manipulation_probability(
    posts: Sequence[SocialMediaData],
    average_sentiment: float,
    positive_ratio: float,
    influencer_activity: int,
    spam_score: float,
) -> float:
    probability = 0.0
    if average_sentiment > 30.0 or average_sentiment < -30.0:
        probability += 0.3
    if positive_ratio > 0.8 or positive_ratio < 0.2:
        probability += 0.25
    if influencer_activity > len(posts) // 4:
        probability += 0.2
    if spam_score > 0.6:
        probability += 0.25
    if len(posts) > 50:
        probability += 0.1
    return min(probability, 1.0)


def analyze_social_media_sentiment(
    social_data: Iterable[SocialMediaData],
    config: SocialMediaConfig,
    current_time: int,
) -> SocialMediaMetrics:
    """Aggregate sentiment, influencer and spam metrics within the monitoring window."""
    window_start = max(current_time - config.monitoring_window, 0)
    recent = [post for post in social_data if post.timestamp >= window_start]
    if not recent:
        return SocialMediaMetrics()

    total = len(recent)
    average_sentiment = sum(post.sentiment_score for post in recent) / total
    positive = sum(1 for post in recent if post.sentiment_score > POSITIVE_SENTIMENT)
    negative = sum(1 for post in recent if post.sentiment_score < NEGATIVE_SENTIMENT)
    positive_ratio = positive / total
    negative_ratio = negative / total
    influencers = sum(
        1 for post in recent if post.author_followers >= config.influencer_threshold
    )
    spam = _spam_score(recent)
    manipulation = _manipulation_probability(
        recent, average_sentiment, positive_ratio, influencers, spam
    )
    return SocialMediaMetrics(
        total_volume=total,
        average_sentiment=average_sentiment,
        positive_ratio=positive_ratio,
        negative_ratio=negative_ratio,
        influencer_activity=influencers,
        spam_score=spam,
        manipulation_probability=manipulation,
    )


def validate_enhanced_mev_protection(
    pool,
    amount_in: int,
    zero_for_one: bool,
    sqrt_price_limit: int,
    oracle_observations,
    social_data,
    config: MevConfig,
    social_config: SocialMediaConfig,
    current_time: int,
) -> bool:
    """TWAP validation tightened by social media activity."""
    if not validate_twap_vs_spot(oracle_observations, pool.sqrt_price_x96, config):
        return False

    if not social_config.twitter_enabled or not social_data:
        return True

    metrics = analyze_social_media_sentiment(social_data, social_config, current_time)
    if metrics.manipulation_probability > MANIPULATION_BLOCK_THRESHOLD:
        return False

    if metrics.total_volume > social_config.volume_threshold:
        twap = calculate_twap(oracle_observations, config.oracle_window)
        if zero_for_one:
            if sqrt_price_limit < _checked(twap * 95) // 100:
                return False
        elif sqrt_price_limit > _checked(twap * 105) // 100:
            return False

    if (
        metrics.influencer_activity > INFLUENCER_HYPE_COUNT
        and metrics.average_sentiment > INFLUENCER_HYPE_SENTIMENT
    ):
        twap = calculate_twap(oracle_observations, config.oracle_window)
        if _deviation_bps(pool.sqrt_price_x96, twap) > INFLUENCER_HYPE_MAX_DEVIATION_BPS:
            return False

    return True


def add_social_media_data(
    social_data: Deque[SocialMediaData], data: SocialMediaData, max_entries: int
) -> None:
    """Append a post, dropping the oldest beyond max_entries."""
    social_data.append(data)
    while len(social_data) > max_entries:
        social_data.popleft()


def generate_social_mev_report(
    pool,
    oracle_observations,
    social_data,
    config: MevConfig,
    social_config: SocialMediaConfig,
    current_time: int,
) -> SocialMevReport:
    """Report the TWAP deviation together with social media metrics."""
    twap = calculate_twap(oracle_observations, config.oracle_window)
    spot = pool.sqrt_price_x96
    metrics = None
    if social_config.twitter_enabled and social_data:
        metrics = analyze_social_media_sentiment(social_data, social_config, current_time)
    return SocialMevReport(
        timestamp=current_time,
        twap_price=twap,
        spot_price=spot,
        price_deviation_bps=_deviation_bps(spot, twap) & _U32_MAX,
        oracle_observations_count=len(oracle_observations),
        social_media_metrics=metrics,
        protection_enabled=config.oracle_enabled,
        social_protection_enabled=social_config.twitter_enabled,
    )