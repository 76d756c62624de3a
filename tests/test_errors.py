import pytest

from clmm.errors import CLMMError, ErrorCode


@pytest.mark.parametrize(
    "code, message",
    [
        (ErrorCode.INVALID_INSTRUCTION, "Invalid instruction"),
        (ErrorCode.INVALID_ACCOUNT, "Invalid account"),
        (ErrorCode.MATH_OVERFLOW, "Math overflow"),
        (ErrorCode.INVALID_TICK_RANGE, "Invalid tick range"),
        (ErrorCode.INSUFFICIENT_LIQUIDITY, "Insufficient liquidity"),
        (ErrorCode.INVALID_PRICE, "Invalid price"),
        (ErrorCode.UNAUTHORIZED, "Unauthorized"),
        (ErrorCode.INVALID_ORACLE, "Invalid oracle"),
    ],
)
def test_error_message(code, message):
    error = CLMMError(code)
    assert str(error) == message
    assert error.code is code
    assert code.message == message


def test_codes_follow_declaration_order():
    codes = [CLMMError(number).code for number in range(8)]
    assert [code.name for code in codes] == [
        "INVALID_INSTRUCTION",
        "INVALID_ACCOUNT",
        "MATH_OVERFLOW",
        "INVALID_TICK_RANGE",
        "INSUFFICIENT_LIQUIDITY",
        "INVALID_PRICE",
        "UNAUTHORIZED",
        "INVALID_ORACLE",
    ]


def test_plain_integer_is_accepted():
    error = CLMMError(int(ErrorCode.INVALID_PRICE))
    assert error.code is ErrorCode.INVALID_PRICE
    assert str(error) == "Invalid price"


def test_unknown_code_is_rejected():
    with pytest.raises(ValueError):
        CLMMError(len(ErrorCode))


def test_error_can_be_raised_and_caught():
    error = CLMMError(ErrorCode.UNAUTHORIZED)
    with pytest.raises(CLMMError, match="^Unauthorized$") as excinfo:
        raise error
    assert excinfo.value is error
    assert excinfo.value.code is ErrorCode.UNAUTHORIZED
    assert str(excinfo.value) == "Unauthorized"