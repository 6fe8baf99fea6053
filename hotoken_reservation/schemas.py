"""
Pydantic Data Models and Validation Schemas

This module defines the data models of the reservation engine using Pydantic. It provides
type safety, address normalization and JSON (de)serialization for the sale state bundle,
the events emitted on purchase and the receipts returned by every mutating operation.

Key Components:
- Address: 0x-prefixed hex address normalized to 40 lowercase digits
- LedgerRecord: cumulative external contribution of one participant
- SaleState: the complete mutable state bundle (one per deployed sale)
- TokenPurchaseEvent: audit event emitted by a committed purchase
- Receipt: committed/reverted outcome of a mutating invocation

Schema Structure:
- SaleState holds the owner, supply parameters, whitelist, rate table, discount,
  minimum purchase, ledger, balances, counters and the pause flag
- Mappings are keyed by normalized addresses so lookups are case-insensitive

Usage:
- reservation.py deep-copies SaleState to stage every invocation
- state_store.py persists SaleState as JSON
- server.py and actions.py serialize Receipt for callers
"""
import re
from enum import Enum
from typing import Annotated, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, Field

from hotoken_reservation.errors import ValidationError

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{1,40}$")
ZERO_ADDRESS = "0x" + "0" * 40


def normalize_address(value: str) -> str:
    """
    Normalizes a hex address to 0x followed by 40 lowercase digits.

    Short forms are left-padded, so "0x0" is the zero address.

    Raises:
        ValidationError: If value is not a 0x-prefixed hex string of 1 to 40 digits.
    """
    if not isinstance(value, str) or not ADDRESS_PATTERN.match(value.strip()):
        raise ValidationError(f"Invalid address: {value!r}")
    return "0x" + value.strip()[2:].lower().rjust(40, "0")


def _validate_address(value: str) -> str:
    try:
        return normalize_address(value)
    except ValidationError as e:
        # pydantic only converts ValueError/AssertionError into its own errors
        raise ValueError(str(e))


Address = Annotated[str, AfterValidator(_validate_address)]


class ReceiptStatus(str, Enum):
    committed = "committed"
    reverted = "reverted"


class LedgerRecord(BaseModel):
    currency: str
    raw_amount: int = 0
    token_amount: int = 0
    exists: bool = True


class SaleState(BaseModel):
    owner: Address
    total_supply: int
    htkn_per_eth: int
    funding_currency: str
    whitelist: Dict[str, bool] = Field(default_factory=dict)
    usd_rates: Dict[str, int] = Field(default_factory=dict)
    discount_rate: int = 0  # stored as a percentage
    minimum_purchase: int = 50000
    ledger: Dict[str, LedgerRecord] = Field(default_factory=dict)
    balances: Dict[str, int] = Field(default_factory=dict)
    token_sold: int = 0
    token_distributed: int = 0
    pause_enabled: bool = False


class TokenPurchaseEvent(BaseModel):
    event: str = "TokenPurchase"
    purchaser: Address
    beneficiary: Address
    value: int
    amount: int


class Receipt(BaseModel):
    operation: str
    caller: str
    status: ReceiptStatus
    error: Optional[str] = None
    message: Optional[str] = None
    logs: List[TokenPurchaseEvent] = Field(default_factory=list)

    @property
    def committed(self) -> bool:
        return self.status == ReceiptStatus.committed
