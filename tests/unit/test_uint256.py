import pytest

from hotoken_reservation import uint256
from hotoken_reservation.errors import ArithmeticOverflowError, ValidationError


def test_add_within_range():
    assert uint256.add(1, 2) == 3
    assert uint256.add(uint256.UINT256_MAX - 1, 1) == uint256.UINT256_MAX


def test_add_overflow_raises_instead_of_wrapping():
    with pytest.raises(ArithmeticOverflowError):
        uint256.add(uint256.UINT256_MAX, 1)


def test_sub_underflow_raises():
    assert uint256.sub(5, 5) == 0
    with pytest.raises(ArithmeticOverflowError):
        uint256.sub(0, 1)


def test_mul_overflow_raises():
    assert uint256.mul(2**128, 2**127) == 2**255
    with pytest.raises(ArithmeticOverflowError):
        uint256.mul(2**128, 2**128)


def test_div_truncates():
    assert uint256.div(1300, 100) == 13
    assert uint256.div(770, 100) == 7
    assert uint256.div(99, 100) == 0


def test_div_by_zero_raises():
    with pytest.raises(ArithmeticOverflowError):
        uint256.div(1, 0)


@pytest.mark.parametrize("value", [-1, 2**256, True, 1.5, "10", None])
def test_require_uint_rejects_values_outside_uint256(value):
    with pytest.raises(ValidationError):
        uint256.require_uint(value)


def test_require_uint_accepts_bounds():
    assert uint256.require_uint(0) == 0
    assert uint256.require_uint(uint256.UINT256_MAX) == uint256.UINT256_MAX
