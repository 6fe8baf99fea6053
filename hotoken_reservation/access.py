"""
Owner Access Control and Pause Switch

A deployed sale has exactly one privileged principal, the owner, fixed at
deployment. Owner-only handlers are wrapped with ``owner_only`` which checks the
caller against ``SaleState.owner`` before the handler touches the state.

The pause switch is a single boolean on the state bundle. It gates the
administrative distribution: a distribution only goes through while the flag
is enabled (the distribution window is open).
"""
import functools
from typing import Callable

from hotoken_reservation.errors import DistributionWindowClosedError, UnauthorizedError, ValidationError
from hotoken_reservation.schemas import SaleState, normalize_address
from mcp.server.fastmcp.utilities.logging import get_logger

logger = get_logger(__name__)


def is_owner(state: SaleState, address: str) -> bool:
    return normalize_address(address) == state.owner


def restrict_to_owner(state: SaleState, caller: str) -> None:
    """Raises UnauthorizedError unless caller is the stored owner."""
    if not is_owner(state, caller):
        raise UnauthorizedError(f"Caller {caller} is not the owner")


def owner_only(handler: Callable) -> Callable:
    """Guards a ``handler(state, caller, *args)`` with restrict_to_owner."""

    @functools.wraps(handler)
    def wrapper(state: SaleState, caller: str, *args, **kwargs):
        restrict_to_owner(state, caller)
        return handler(state, caller, *args, **kwargs)

    return wrapper


@owner_only
def set_pause_enabled(state: SaleState, caller: str, enabled: bool) -> None:
    if not isinstance(enabled, bool):
        raise ValidationError("enabled must be a boolean")
    state.pause_enabled = enabled
    logger.debug(f"Pause flag set to {enabled}")


def is_pause_enabled(state: SaleState) -> bool:
    return state.pause_enabled


def require_distribution_window(state: SaleState) -> None:
    # Distribution is open only while the pause flag is enabled.
    if not state.pause_enabled:
        raise DistributionWindowClosedError("Distribution window is closed")
