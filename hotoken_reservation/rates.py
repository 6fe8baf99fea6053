"""
USD Rate Table, Discount Policy and Minimum Purchase

The rate table maps a currency symbol to a positive integer USD rate. Looking up
a symbol that was never set is an error, never a zero default. The discount is a
single percentage set through an index (percentage = index * DISCOUNT_STEP) and
capped at MAX_DISCOUNT_PERCENTAGE. The minimum purchase is the raw amount a
participant's first contribution must reach.
"""
from hotoken_reservation import config
from hotoken_reservation import uint256
from hotoken_reservation.access import owner_only
from hotoken_reservation.errors import InvalidDiscountError, UnknownCurrencyError, ValidationError
from hotoken_reservation.schemas import SaleState
from mcp.server.fastmcp.utilities.logging import get_logger

logger = get_logger(__name__)


def _require_symbol(symbol: str) -> str:
    if not isinstance(symbol, str) or not symbol.strip():
        raise ValidationError("Currency symbol must be a non-empty string")
    return symbol.strip()


@owner_only
def set_usd_rate(state: SaleState, caller: str, symbol: str, rate: int) -> None:
    symbol = _require_symbol(symbol)
    uint256.require_uint(rate, "rate")
    if rate == 0:
        raise ValidationError("USD rate must be positive")
    state.usd_rates[symbol] = rate
    logger.debug(f"USD rate for {symbol} set to {rate}")


def get_usd_rate(state: SaleState, symbol: str) -> int:
    try:
        return state.usd_rates[symbol]
    except KeyError:
        raise UnknownCurrencyError(f"No USD rate set for currency '{symbol}'")


@owner_only
def set_discount_rate(state: SaleState, caller: str, index: int) -> None:
    uint256.require_uint(index, "discount index")
    percentage = uint256.mul(index, config.DISCOUNT_STEP)
    if percentage > config.MAX_DISCOUNT_PERCENTAGE:
        raise InvalidDiscountError(
            f"Discount of {percentage}% exceeds the maximum of {config.MAX_DISCOUNT_PERCENTAGE}%"
        )
    state.discount_rate = percentage
    logger.debug(f"Discount rate set to {percentage}%")


def get_discount_rate(state: SaleState) -> int:
    return state.discount_rate


@owner_only
def set_minimum_purchase(state: SaleState, caller: str, amount: int) -> None:
    state.minimum_purchase = uint256.require_uint(amount, "minimum purchase")
    logger.debug(f"Minimum purchase set to {amount}")


def get_minimum_purchase(state: SaleState) -> int:
    return state.minimum_purchase
