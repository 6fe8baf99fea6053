"""
Value Settlement

The reservation engine never holds external value: every committed purchase forwards
the full received value to the owner. The settlement network itself lives outside
this package, so the engine talks to it through the ValueLedger protocol. The
engine only needs to know that the move succeeded before it commits its own state.

InMemoryValueLedger is the default implementation. It keeps external balances per
address and is what the tests and the local servers run against.
"""
from typing import Dict, Protocol

from hotoken_reservation.errors import SettlementError
from hotoken_reservation.schemas import normalize_address
from mcp.server.fastmcp.utilities.logging import get_logger

logger = get_logger(__name__)


class ValueLedger(Protocol):
    def balance_of(self, address: str) -> int:
        ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Moves amount from sender to recipient or raises SettlementError."""
        ...


class InMemoryValueLedger:
    """External value balances held in memory."""

    def __init__(self, balances: Dict[str, int] = None):
        self._balances: Dict[str, int] = {}
        for address, amount in (balances or {}).items():
            self.deposit(address, amount)

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)

    def deposit(self, address: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Deposit amount must be non-negative")
        target = normalize_address(address)
        self._balances[target] = self._balances.get(target, 0) + amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        source = normalize_address(sender)
        target = normalize_address(recipient)
        if amount <= 0:
            raise SettlementError("Transfer amount must be positive")
        available = self._balances.get(source, 0)
        if available < amount:
            raise SettlementError(f"Insufficient funds: {source} holds {available}, needs {amount}")
        self._balances[source] = available - amount
        self._balances[target] = self._balances.get(target, 0) + amount
        logger.debug(f"Settled {amount} from {source} to {target}")
