"""
Purchase Ledger and Token Balances

The purchase ledger keeps, per participant, the cumulative external contribution
(currency, raw amount, token amount). A record's existence lets the participant
bypass the minimum purchase on later contributions. Records grow and are never
deleted. The owner never has a record.

Token balances are the issued tokens per address. They start at zero and only
ever increase, through a purchase or an administrative distribution.
"""
from typing import Optional

from hotoken_reservation import uint256
from hotoken_reservation.access import owner_only
from hotoken_reservation.errors import InvalidBeneficiaryError
from hotoken_reservation.rates import get_usd_rate
from hotoken_reservation.schemas import ZERO_ADDRESS, LedgerRecord, SaleState, normalize_address
from mcp.server.fastmcp.utilities.logging import get_logger

logger = get_logger(__name__)


def exists_in_ledger(state: SaleState, address: str) -> bool:
    record = state.ledger.get(normalize_address(address))
    return record is not None and record.exists


def get_ledger_record(state: SaleState, address: str) -> Optional[LedgerRecord]:
    return state.ledger.get(normalize_address(address))


@owner_only
def add_to_ledger(
    state: SaleState, caller: str, address: str, symbol: str, raw_amount: int, token_amount: int
) -> None:
    """Administrative entry: creates or overwrites the record of address."""
    target = normalize_address(address)
    # Raises UnknownCurrencyError for symbols missing from the rate table
    get_usd_rate(state, symbol)
    if target == state.owner or target == ZERO_ADDRESS:
        raise InvalidBeneficiaryError(f"Address {target} cannot hold a ledger record")
    state.ledger[target] = LedgerRecord(
        currency=symbol,
        raw_amount=uint256.require_uint(raw_amount, "raw amount"),
        token_amount=uint256.require_uint(token_amount, "token amount"),
    )
    logger.debug(f"Ledger record written for {target}: {raw_amount} {symbol} -> {token_amount}")


def record_contribution(state: SaleState, address: str, symbol: str, raw_amount: int, token_amount: int) -> LedgerRecord:
    """Adds a purchase to the cumulative record of address, creating it if needed."""
    target = normalize_address(address)
    previous = state.ledger.get(target) or LedgerRecord(currency=symbol)
    record = LedgerRecord(
        currency=symbol,
        raw_amount=uint256.add(previous.raw_amount, raw_amount),
        token_amount=uint256.add(previous.token_amount, token_amount),
    )
    state.ledger[target] = record
    return record


def balance_of(state: SaleState, address: str) -> int:
    return state.balances.get(normalize_address(address), 0)


def credit_balance(state: SaleState, address: str, amount: int) -> int:
    target = normalize_address(address)
    new_balance = uint256.add(state.balances.get(target, 0), amount)
    state.balances[target] = new_balance
    return new_balance
