"""
Checked 256-bit Unsigned Arithmetic

Python integers never overflow, so token amounts and counters are routed through
these helpers to reproduce the behavior of 256-bit unsigned arithmetic with
truncating division. Any result outside [0, 2**256 - 1] raises
ArithmeticOverflowError, which reverts the invocation. Nothing wraps around and
nothing saturates.
"""
from hotoken_reservation.errors import ArithmeticOverflowError, ValidationError

UINT256_MAX = 2**256 - 1


def require_uint(value: int, name: str = "value") -> int:
    """Validates that value is an integer inside the uint256 range."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > UINT256_MAX:
        raise ValidationError(f"{name} must be between 0 and 2**256 - 1, got {value}")
    return value


def _check(result: int, op: str) -> int:
    if result < 0 or result > UINT256_MAX:
        raise ArithmeticOverflowError(f"uint256 {op} overflow")
    return result


def add(a: int, b: int) -> int:
    return _check(a + b, "addition")


def sub(a: int, b: int) -> int:
    return _check(a - b, "subtraction")


def mul(a: int, b: int) -> int:
    return _check(a * b, "multiplication")


def div(a: int, b: int) -> int:
    """Truncating division. Division by zero is an arithmetic failure, as on-chain."""
    if b == 0:
        raise ArithmeticOverflowError("uint256 division by zero")
    return a // b
