"""Error codes raised by pool arithmetic and validation."""

from enum import IntEnum

_MESSAGES = {
    0: "Invalid instruction",
    1: "Invalid account",
    2: "Math overflow",
    3: "Invalid tick range",
    4: "Insufficient liquidity",
    5: "Invalid price",
    6: "Unauthorized",
    7: "Invalid oracle",
}


class ErrorCode(IntEnum):
    """Numeric error codes, numbered in declaration order."""

    INVALID_INSTRUCTION = 0
    INVALID_ACCOUNT = 1
    MATH_OVERFLOW = 2
    INVALID_TICK_RANGE = 3
    INSUFFICIENT_LIQUIDITY = 4
    INVALID_PRICE = 5
    UNAUTHORIZED = 6
    INVALID_ORACLE = 7

    @property
    def message(self) -> str:
        return _MESSAGES[self.value]


class CLMMError(Exception):
    """Raised when a pool operation fails; carries an ErrorCode."""

    def __init__(self, code):
        self.code = ErrorCode(code)
        super().__init__(self.code.message)