"""
Token Amount Calculation

This module converts an incoming contribution into the number of tokens it buys.
The formula applies the base issuance rate, the discount bonus, the USD rate of the
funding currency and the raw contribution, in this exact order:

    amount = htkn_per_eth * (100 + discount) / 100 * usd_rate * raw_amount

Every step runs through uint256 checked arithmetic with truncating division, so the
result matches 256-bit unsigned integer arithmetic (the division happens before the
multiplication by the USD rate, which affects rounding). Overflow raises
ArithmeticOverflowError instead of wrapping.
"""
from hotoken_reservation import uint256
from hotoken_reservation.rates import get_discount_rate, get_usd_rate
from hotoken_reservation.schemas import SaleState
from mcp.server.fastmcp.utilities.logging import get_logger

logger = get_logger(__name__)

PERCENT = 100


def calculate_token_amount(htkn_per_eth: int, discount_percentage: int, usd_rate: int, raw_amount: int) -> int:
    """
    Calculates the tokens issued for a contribution.

    Args:
        htkn_per_eth: Base issuance rate.
        discount_percentage: Discount bonus in percent (0-30 in the default configuration).
        usd_rate: USD rate of the funding currency.
        raw_amount: Contribution in the currency's minor units.

    Returns:
        The token amount in base units.

    Raises:
        ArithmeticOverflowError: If any intermediate result leaves the uint256 range.
    """
    amount = uint256.mul(htkn_per_eth, uint256.add(PERCENT, discount_percentage))
    amount = uint256.div(amount, PERCENT)
    amount = uint256.mul(amount, usd_rate)
    amount = uint256.mul(amount, raw_amount)
    logger.debug(
        f"Token amount for {raw_amount} at rate {usd_rate}, discount {discount_percentage}%: {amount}"
    )
    return amount


def quote_purchase(state: SaleState, currency: str, raw_amount: int) -> int:
    """Prices raw_amount of currency against the current rate table and discount."""
    return calculate_token_amount(
        state.htkn_per_eth,
        get_discount_rate(state),
        get_usd_rate(state, currency),
        raw_amount,
    )
