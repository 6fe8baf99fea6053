"""Whitelist of addresses eligible to purchase."""
from typing import Iterable, List

from hotoken_reservation.access import owner_only
from hotoken_reservation.errors import InvalidBeneficiaryError
from hotoken_reservation.schemas import SaleState, normalize_address
from mcp.server.fastmcp.utilities.logging import get_logger

logger = get_logger(__name__)


def _normalize_members(state: SaleState, addresses: Iterable[str]) -> List[str]:
    members = [normalize_address(address) for address in addresses]
    if state.owner in members:
        raise InvalidBeneficiaryError("The owner cannot be added to the whitelist")
    return members


@owner_only
def add_to_whitelist(state: SaleState, caller: str, address: str) -> None:
    add_many_to_whitelist(state, caller, [address])


@owner_only
def add_many_to_whitelist(state: SaleState, caller: str, addresses: Iterable[str]) -> None:
    members = _normalize_members(state, addresses)
    for member in members:
        state.whitelist[member] = True
    logger.debug(f"Whitelisted {len(members)} address(es)")


@owner_only
def remove_from_whitelist(state: SaleState, caller: str, address: str) -> None:
    remove_many_from_whitelist(state, caller, [address])


@owner_only
def remove_many_from_whitelist(state: SaleState, caller: str, addresses: Iterable[str]) -> None:
    removed = 0
    for address in addresses:
        if state.whitelist.pop(normalize_address(address), None):
            removed += 1
    logger.debug(f"Removed {removed} address(es) from the whitelist")


def exists_in_whitelist(state: SaleState, address: str) -> bool:
    return state.whitelist.get(normalize_address(address), False)
