"""
Hotoken Reservation Engine

This module is the settlement core of the token sale. HotokenReservation owns the sale
state bundle and runs every externally triggered operation as one serialized unit of
work: configuration changes, the default value-receipt (purchase) path and the
administrative distribution.

Transactional Boundary:
1. Acquire the engine lock (one writer at a time)
2. Deep-copy the state into a scratch copy
3. Run the operation handler against the scratch copy; the handler stages the
   events to emit and the value to forward to the owner
4. Forward the staged value through the settlement collaborator
5. Swap the scratch copy in, persist it and emit the staged events
6. Return a committed Receipt

Any ReservationError raised in steps 3 or 4 discards the scratch copy and yields a
reverted Receipt: no state change, no value movement, no event. Reads do not go
through the boundary and raise their errors directly.

Purchase Path (default value receipt):
- Sender must be whitelisted and must not be the owner
- First contributions must reach the minimum purchase; recorded contributors bypass it
- Tokens are priced by pricing.calculate_token_amount in the funding currency
- The sale never issues beyond the total supply
- The full received value is forwarded to the owner and a TokenPurchase event is emitted
"""
import threading
from typing import Callable, Iterable, List, NamedTuple, Optional

from hotoken_reservation import access
from hotoken_reservation import config
from hotoken_reservation import ledger
from hotoken_reservation import pricing
from hotoken_reservation import rates
from hotoken_reservation import state_store
from hotoken_reservation import uint256
from hotoken_reservation import whitelist
from hotoken_reservation.errors import (
    BelowMinimumError,
    ConfigurationError,
    InvalidBeneficiaryError,
    NotWhitelistedError,
    ReservationError,
    SelfPurchaseError,
    SupplyExceededError,
    ValidationError,
)
from hotoken_reservation.events import EventLog
from hotoken_reservation.schemas import (
    ZERO_ADDRESS,
    LedgerRecord,
    Receipt,
    ReceiptStatus,
    SaleState,
    TokenPurchaseEvent,
    normalize_address,
)
from hotoken_reservation.settlement import InMemoryValueLedger, ValueLedger
from mcp.server.fastmcp.utilities.logging import get_logger

logger = get_logger(__name__)


class ValueMove(NamedTuple):
    sender: str
    recipient: str
    amount: int


class StagedEffects:
    """Side effects staged by a handler, applied only if the invocation commits."""

    def __init__(self):
        self.events: List[TokenPurchaseEvent] = []
        self.value_move: Optional[ValueMove] = None


def process_purchase(state: SaleState, effects: StagedEffects, sender: str, value: int) -> int:
    """
    Runs the purchase state machine against state.

    Returns:
        The token amount issued to sender.
    """
    uint256.require_uint(value, "value")
    if value == 0:
        raise ValidationError("Purchase value must be positive")
    sender = normalize_address(sender)

    if not whitelist.exists_in_whitelist(state, sender):
        raise NotWhitelistedError(f"Address {sender} is not whitelisted")
    if access.is_owner(state, sender):
        raise SelfPurchaseError("The owner cannot purchase tokens")

    first_contribution = not ledger.exists_in_ledger(state, sender)
    if first_contribution and value < state.minimum_purchase:
        raise BelowMinimumError(
            f"First contribution of {value} is below the minimum purchase of {state.minimum_purchase}"
        )

    amount = pricing.quote_purchase(state, state.funding_currency, value)
    token_sold = uint256.add(state.token_sold, amount)
    # Distributed tokens count against the same supply cap.
    if uint256.add(token_sold, state.token_distributed) > state.total_supply:
        raise SupplyExceededError(
            f"Selling {amount} would exceed the total supply "
            f"({state.token_sold} sold, {state.token_distributed} distributed of {state.total_supply})"
        )

    ledger.credit_balance(state, sender, amount)
    state.token_sold = token_sold
    ledger.record_contribution(state, sender, state.funding_currency, value, amount)

    effects.value_move = ValueMove(sender, state.owner, value)
    effects.events.append(TokenPurchaseEvent(purchaser=sender, beneficiary=sender, value=value, amount=amount))
    return amount


@access.owner_only
def distribute(state: SaleState, caller: str, to: str, amount: int) -> None:
    """Administrative distribution: credits to without any value movement or ledger entry."""
    uint256.require_uint(amount, "amount")
    target = normalize_address(to)
    if target == ZERO_ADDRESS or target == state.owner:
        raise InvalidBeneficiaryError(f"Cannot distribute tokens to {target}")
    access.require_distribution_window(state)

    issued = uint256.add(uint256.add(state.token_sold, state.token_distributed), amount)
    if issued > state.total_supply:
        raise SupplyExceededError(f"Distributing {amount} would exceed the total supply")

    ledger.credit_balance(state, target, amount)
    state.token_distributed = uint256.add(state.token_distributed, amount)


class HotokenReservation:
    """A deployed token sale: the state bundle plus its collaborators."""

    def __init__(
        self,
        state: SaleState,
        settlement: Optional[ValueLedger] = None,
        event_log: Optional[EventLog] = None,
        state_file: Optional[str] = None,
    ):
        if state.funding_currency not in state.usd_rates:
            raise ConfigurationError(f"Funding currency {state.funding_currency} has no USD rate")
        self._state = state
        self.settlement = settlement if settlement is not None else InMemoryValueLedger()
        self.event_log = event_log if event_log is not None else EventLog()
        self.state_file = state_file or None
        self._lock = threading.RLock()

    @classmethod
    def deploy(
        cls,
        owner: Optional[str] = None,
        settlement: Optional[ValueLedger] = None,
        event_log: Optional[EventLog] = None,
        state_file: Optional[str] = None,
        total_supply: Optional[int] = None,
        htkn_per_eth: Optional[int] = None,
        minimum_purchase: Optional[int] = None,
        usd_rates: Optional[dict] = None,
        funding_currency: Optional[str] = None,
    ) -> "HotokenReservation":
        """
        Deploys a sale from configuration defaults, or resumes the one persisted in state_file.

        Keyword arguments override the values from config.py for a fresh deployment only.
        """
        state = state_store.load_state(state_file) if state_file else None
        if state is None:
            state = SaleState(
                owner=owner or config.OWNER_ADDRESS,
                total_supply=config.TOTAL_SUPPLY if total_supply is None else total_supply,
                htkn_per_eth=config.HTKN_PER_ETH if htkn_per_eth is None else htkn_per_eth,
                funding_currency=funding_currency or config.FUNDING_CURRENCY,
                usd_rates=dict(config.DEFAULT_USD_RATES if usd_rates is None else usd_rates),
                minimum_purchase=config.DEFAULT_MINIMUM_PURCHASE if minimum_purchase is None else minimum_purchase,
            )
            logger.info(
                f"Deployed reservation: owner={state.owner}, total_supply={state.total_supply}, "
                f"htkn_per_eth={state.htkn_per_eth}, funding_currency={state.funding_currency}"
            )
        elif owner and normalize_address(owner) != state.owner:
            raise ConfigurationError(f"Persisted sale is owned by {state.owner}, not {owner}")
        return cls(state, settlement=settlement, event_log=event_log, state_file=state_file)

    # --- Transactional boundary ---

    def _execute(self, operation: str, caller: str, handler: Callable[[SaleState, StagedEffects], None]) -> Receipt:
        try:
            caller = normalize_address(caller)
        except ValidationError:
            # Left as given; the handler rejects it and the receipt reports the raw value.
            caller = str(caller)
        with self._lock:
            scratch = self._state.model_copy(deep=True)
            effects = StagedEffects()
            try:
                handler(scratch, effects)
                if effects.value_move is not None:
                    self.settlement.transfer(*effects.value_move)
            except ReservationError as e:
                logger.warning(f"{operation} reverted for caller {caller}: {type(e).__name__}: {e}")
                return Receipt(
                    operation=operation,
                    caller=caller,
                    status=ReceiptStatus.reverted,
                    error=type(e).__name__,
                    message=str(e),
                )

            self._state = scratch
            if self.state_file and not state_store.save_state(scratch, self.state_file):
                logger.error(f"{operation} committed but the state could not be persisted to {self.state_file}")
            for event in effects.events:
                self.event_log.emit(event)

            logger.info(f"{operation} committed for caller {caller}")
            return Receipt(operation=operation, caller=caller, status=ReceiptStatus.committed, logs=effects.events)

    def _read(self, reader: Callable, *args):
        with self._lock:
            return reader(self._state, *args)

    def snapshot(self) -> SaleState:
        """Returns a copy of the current state, detached from the engine."""
        with self._lock:
            return self._state.model_copy(deep=True)

    # --- Whitelist ---

    def add_to_whitelist(self, caller: str, address: str) -> Receipt:
        return self._execute(
            "add_to_whitelist", caller, lambda state, _: whitelist.add_to_whitelist(state, caller, address)
        )

    def add_many_to_whitelist(self, caller: str, addresses: Iterable[str]) -> Receipt:
        addresses = list(addresses)
        return self._execute(
            "add_many_to_whitelist", caller, lambda state, _: whitelist.add_many_to_whitelist(state, caller, addresses)
        )

    def remove_from_whitelist(self, caller: str, address: str) -> Receipt:
        return self._execute(
            "remove_from_whitelist", caller, lambda state, _: whitelist.remove_from_whitelist(state, caller, address)
        )

    def remove_many_from_whitelist(self, caller: str, addresses: Iterable[str]) -> Receipt:
        addresses = list(addresses)
        return self._execute(
            "remove_many_from_whitelist",
            caller,
            lambda state, _: whitelist.remove_many_from_whitelist(state, caller, addresses),
        )

    def exists_in_whitelist(self, address: str) -> bool:
        return self._read(whitelist.exists_in_whitelist, address)

    # --- Rates, discount and minimum purchase ---

    def set_usd_rate(self, caller: str, symbol: str, rate: int) -> Receipt:
        return self._execute("set_usd_rate", caller, lambda state, _: rates.set_usd_rate(state, caller, symbol, rate))

    def get_usd_rate(self, symbol: str) -> int:
        return self._read(rates.get_usd_rate, symbol)

    def set_discount_rate(self, caller: str, index: int) -> Receipt:
        return self._execute(
            "set_discount_rate", caller, lambda state, _: rates.set_discount_rate(state, caller, index)
        )

    def get_discount_rate(self) -> int:
        return self._read(rates.get_discount_rate)

    def set_minimum_purchase(self, caller: str, amount: int) -> Receipt:
        return self._execute(
            "set_minimum_purchase", caller, lambda state, _: rates.set_minimum_purchase(state, caller, amount)
        )

    def get_minimum_purchase(self) -> int:
        return self._read(rates.get_minimum_purchase)

    # --- Pause switch ---

    def set_pause_enabled(self, caller: str, enabled: bool) -> Receipt:
        return self._execute(
            "set_pause_enabled", caller, lambda state, _: access.set_pause_enabled(state, caller, enabled)
        )

    def is_pause_enabled(self) -> bool:
        return self._read(access.is_pause_enabled)

    # --- Ledger and balances ---

    def exists_in_ledger(self, address: str) -> bool:
        return self._read(ledger.exists_in_ledger, address)

    def get_ledger_record(self, address: str) -> Optional[LedgerRecord]:
        record = self._read(ledger.get_ledger_record, address)
        return record.model_copy() if record is not None else None

    def add_to_ledger(self, caller: str, address: str, symbol: str, raw_amount: int, token_amount: int) -> Receipt:
        return self._execute(
            "add_to_ledger",
            caller,
            lambda state, _: ledger.add_to_ledger(state, caller, address, symbol, raw_amount, token_amount),
        )

    def balance_of(self, address: str) -> int:
        return self._read(ledger.balance_of, address)

    def get_token_sold(self) -> int:
        return self._read(lambda state: state.token_sold)

    def get_token_distributed(self) -> int:
        return self._read(lambda state: state.token_distributed)

    # --- Sale parameters ---

    def get_owner(self) -> str:
        return self._read(lambda state: state.owner)

    def get_total_supply(self) -> int:
        return self._read(lambda state: state.total_supply)

    def get_htkn_per_eth(self) -> int:
        return self._read(lambda state: state.htkn_per_eth)

    def get_funding_currency(self) -> str:
        return self._read(lambda state: state.funding_currency)

    # --- Value receipt and distribution ---

    def purchase(self, sender: str, value: int) -> Receipt:
        """Default value-receipt path: sender sends value and receives tokens."""
        return self._execute("purchase", sender, lambda state, effects: process_purchase(state, effects, sender, value))

    def transfer(self, caller: str, to: str, amount: int) -> Receipt:
        """Administrative distribution of amount tokens to address to."""
        return self._execute("transfer", caller, lambda state, _: distribute(state, caller, to, amount))
