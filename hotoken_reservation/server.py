"""
Hotoken Reservation Server - MCP Server Implementation

This module exposes the reservation engine through the Model Context Protocol. Every
operation of the sale is available as a tool: owner-only configuration, the default
value-receipt (purchase) path, the administrative distribution and the public reads.

Key Features:
- One engine instance per server process, deployed at startup from config.py
- Mutating tools return the JSON receipt of the invocation (committed or reverted)
- Read tools return a JSON document with the requested value
- Optional JSON persistence of the sale state (STATE_FILE)
- Structured logging of every invocation with its duration

Security Features:
- Owner checks are enforced by the engine, never by the transport
- Input validation before the engine is called
- Secure error message handling (no internal details exposed)
"""

import json
import time
from typing import Any, Callable, List

from pydantic import Field

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.fastmcp.utilities.logging import get_logger

from hotoken_reservation import config
from hotoken_reservation.errors import ReservationError
from hotoken_reservation.reservation import HotokenReservation
from hotoken_reservation.schemas import Receipt

logger = get_logger(__name__)

# Constants
MAX_SYMBOL_LENGTH = 16
MAX_BATCH_SIZE = 500

# --- Server Setup ---
mcp = FastMCP(name="Hotoken Reservation Server")

# The sale state lives here for the lifetime of the process.
reservation = HotokenReservation.deploy(state_file=config.STATE_FILE or None)


def validate_symbol(symbol: str) -> None:
    if not symbol or not isinstance(symbol, str):
        raise ValueError("Currency symbol must be a non-empty string")
    if len(symbol) > MAX_SYMBOL_LENGTH:
        raise ValueError("Currency symbol is too long")


def validate_batch(addresses: List[str]) -> None:
    if not isinstance(addresses, list):
        raise ValueError("Addresses must be a list")
    if len(addresses) > MAX_BATCH_SIZE:
        raise ValueError(f"At most {MAX_BATCH_SIZE} addresses can be processed at once")


def log_invocation(receipt: Receipt, duration: float) -> None:
    """Log the outcome of a mutating invocation with structured information."""
    if receipt.committed:
        logger.info(f"{receipt.operation} committed: caller={receipt.caller}, "
                    f"events={len(receipt.logs)}, duration={duration:.3f}s")
    else:
        logger.warning(f"{receipt.operation} reverted: caller={receipt.caller}, "
                       f"error={receipt.error}, duration={duration:.3f}s")


def submit(operation: str, invoke: Callable[[], Receipt]) -> str:
    """Runs a mutating engine call and returns its receipt as JSON."""
    start_time = time.time()
    try:
        receipt = invoke()
        log_invocation(receipt, time.time() - start_time)
        return receipt.model_dump_json(indent=2)
    except ValueError as e:
        logger.error(f"Validation error in {operation}: {e}")
        return f"Error: {e}"
    except Exception as e:
        logger.exception(f"Unexpected error in {operation}: {e}")
        return f"An unexpected server error occurred during {operation}."


def query(operation: str, read: Callable[[], Any]) -> str:
    """Runs a read-only engine call and returns its value as JSON."""
    try:
        return json.dumps({"operation": operation, "result": read()})
    except ReservationError as e:
        logger.debug(f"{operation} failed: {type(e).__name__}: {e}")
        return f"Error: {type(e).__name__}: {e}"
    except Exception as e:
        logger.exception(f"Unexpected error in {operation}: {e}")
        return f"An unexpected server error occurred during {operation}."


# --- Sale Information ---

@mcp.tool()
async def get_sale_info(context: Context) -> str:
    """Get the current configuration and progress of the sale."""
    try:
        state = reservation.snapshot()
        info = {
            "owner": state.owner,
            "total_supply": state.total_supply,
            "htkn_per_eth": state.htkn_per_eth,
            "funding_currency": state.funding_currency,
            "usd_rates": state.usd_rates,
            "discount_rate": state.discount_rate,
            "minimum_purchase": state.minimum_purchase,
            "token_sold": state.token_sold,
            "token_distributed": state.token_distributed,
            "pause_enabled": state.pause_enabled,
            "whitelisted": len(state.whitelist),
            "contributors": len(state.ledger),
        }
        return json.dumps(info, indent=2)
    except Exception as e:
        logger.exception(f"Unexpected error getting sale info: {e}")
        return "An unexpected error occurred while retrieving sale information."


# --- Whitelist Tools ---

@mcp.tool()
async def add_to_whitelist(
    context: Context,
    caller: str = Field(..., description="Address invoking the operation (must be the owner)."),
    address: str = Field(..., description="Address to whitelist."),
) -> str:
    """Adds an address to the whitelist."""
    return submit("add_to_whitelist", lambda: reservation.add_to_whitelist(caller, address))


@mcp.tool()
async def add_many_to_whitelist(
    context: Context,
    caller: str = Field(..., description="Address invoking the operation (must be the owner)."),
    addresses: List[str] = Field(..., description="Addresses to whitelist."),
) -> str:
    """Adds several addresses to the whitelist in one invocation."""
    def invoke() -> Receipt:
        validate_batch(addresses)
        return reservation.add_many_to_whitelist(caller, addresses)
    return submit("add_many_to_whitelist", invoke)


@mcp.tool()
async def remove_from_whitelist(
    context: Context,
    caller: str = Field(..., description="Address invoking the operation (must be the owner)."),
    address: str = Field(..., description="Address to remove from the whitelist."),
) -> str:
    """Removes an address from the whitelist."""
    return submit("remove_from_whitelist", lambda: reservation.remove_from_whitelist(caller, address))


@mcp.tool()
async def remove_many_from_whitelist(
    context: Context,
    caller: str = Field(..., description="Address invoking the operation (must be the owner)."),
    addresses: List[str] = Field(..., description="Addresses to remove from the whitelist."),
) -> str:
    """Removes several addresses from the whitelist in one invocation."""
    def invoke() -> Receipt:
        validate_batch(addresses)
        return reservation.remove_many_from_whitelist(caller, addresses)
    return submit("remove_many_from_whitelist", invoke)


@mcp.tool()
async def exists_in_whitelist(
    context: Context,
    address: str = Field(..., description="Address to look up."),
) -> str:
    """Checks whether an address is whitelisted."""
    return query("exists_in_whitelist", lambda: reservation.exists_in_whitelist(address))


# --- Rate Table and Discount Tools ---

@mcp.tool()
async def set_usd_rate(
    context: Context,
    caller: str = Field(..., description="Address invoking the operation (must be the owner)."),
    symbol: str = Field(..., description="Currency symbol, e.g. ETH."),
    rate: int = Field(..., description="Positive integer USD rate."),
) -> str:
    """Sets the USD rate of a currency."""
    def invoke() -> Receipt:
        validate_symbol(symbol)
        return reservation.set_usd_rate(caller, symbol, rate)
    return submit("set_usd_rate", invoke)


@mcp.tool()
async def get_usd_rate(
    context: Context,
    symbol: str = Field(..., description="Currency symbol, e.g. ETH."),
) -> str:
    """Gets the USD rate of a currency."""
    return query("get_usd_rate", lambda: reservation.get_usd_rate(symbol))


@mcp.tool()
async def set_discount_rate(
    context: Context,
    caller: str = Field(..., description="Address invoking the operation (must be the owner)."),
    index: int = Field(..., description="Discount index; the discount percentage is index * 10."),
) -> str:
    """Sets the purchase discount."""
    return submit("set_discount_rate", lambda: reservation.set_discount_rate(caller, index))


@mcp.tool()
async def get_discount_rate(context: Context) -> str:
    """Gets the purchase discount in percent."""
    return query("get_discount_rate", reservation.get_discount_rate)


@mcp.tool()
async def set_minimum_purchase(
    context: Context,
    caller: str = Field(..., description="Address invoking the operation (must be the owner)."),
    amount: int = Field(..., description="Minimum raw amount of a first contribution."),
) -> str:
    """Sets the minimum purchase."""
    return submit("set_minimum_purchase", lambda: reservation.set_minimum_purchase(caller, amount))


@mcp.tool()
async def get_minimum_purchase(context: Context) -> str:
    """Gets the minimum purchase."""
    return query("get_minimum_purchase", reservation.get_minimum_purchase)


# --- Pause Switch Tools ---

@mcp.tool()
async def set_pause_enabled(
    context: Context,
    caller: str = Field(..., description="Address invoking the operation (must be the owner)."),
    enabled: bool = Field(..., description="New value of the pause flag."),
) -> str:
    """Sets the pause flag. Administrative distribution is only possible while it is enabled."""
    return submit("set_pause_enabled", lambda: reservation.set_pause_enabled(caller, enabled))


@mcp.tool()
async def is_pause_enabled(context: Context) -> str:
    """Gets the pause flag."""
    return query("is_pause_enabled", reservation.is_pause_enabled)


# --- Ledger and Balance Tools ---

@mcp.tool()
async def exists_in_ledger(
    context: Context,
    address: str = Field(..., description="Address to look up."),
) -> str:
    """Checks whether an address has a contribution record."""
    return query("exists_in_ledger", lambda: reservation.exists_in_ledger(address))


@mcp.tool()
async def get_ledger_record(
    context: Context,
    address: str = Field(..., description="Address to look up."),
) -> str:
    """Gets the cumulative contribution record of an address."""
    def read():
        record = reservation.get_ledger_record(address)
        return record.model_dump(mode="json") if record is not None else None
    return query("get_ledger_record", read)


@mcp.tool()
async def add_to_ledger(
    context: Context,
    caller: str = Field(..., description="Address invoking the operation (must be the owner)."),
    address: str = Field(..., description="Contributor address."),
    symbol: str = Field(..., description="Currency of the contribution."),
    raw_amount: int = Field(..., description="Raw contribution amount."),
    token_amount: int = Field(..., description="Token amount attributed to the contribution."),
) -> str:
    """Writes a contribution record for an off-path contribution."""
    def invoke() -> Receipt:
        validate_symbol(symbol)
        return reservation.add_to_ledger(caller, address, symbol, raw_amount, token_amount)
    return submit("add_to_ledger", invoke)


@mcp.tool()
async def balance_of(
    context: Context,
    address: str = Field(..., description="Address to look up."),
) -> str:
    """Gets the token balance of an address."""
    return query("balance_of", lambda: reservation.balance_of(address))


@mcp.tool()
async def get_token_sold(context: Context) -> str:
    """Gets the number of tokens sold through purchases."""
    return query("get_token_sold", reservation.get_token_sold)


@mcp.tool()
async def get_token_distributed(context: Context) -> str:
    """Gets the number of tokens credited by administrative distribution."""
    return query("get_token_distributed", reservation.get_token_distributed)


# --- Value Receipt and Distribution Tools ---

@mcp.tool()
async def send_value(
    context: Context,
    sender: str = Field(..., description="Address sending the value."),
    value: int = Field(..., description="Value sent, in minor units of the funding currency."),
) -> str:
    """
    Sends value to the sale and buys tokens with it.

    The sender must be whitelisted and must not be the owner. A first contribution must
    reach the minimum purchase. The whole value is forwarded to the owner and the receipt
    carries a TokenPurchase event on success.
    """
    return submit("purchase", lambda: reservation.purchase(sender, value))


@mcp.tool()
async def transfer(
    context: Context,
    caller: str = Field(..., description="Address invoking the operation (must be the owner)."),
    to: str = Field(..., description="Address receiving the tokens."),
    amount: int = Field(..., description="Token amount to credit."),
) -> str:
    """Credits tokens to an address without a value transfer (distribution window must be open)."""
    return submit("transfer", lambda: reservation.transfer(caller, to, amount))


# --- Main Execution ---
if __name__ == "__main__":
    logger.info("Starting Hotoken Reservation MCP Server...")
    logger.info(f"Sale owner: {reservation.get_owner()}, tokens sold: {reservation.get_token_sold()}")

    try:
        mcp.run(transport="stdio")
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
    except Exception as e:
        logger.exception(f"Server error: {e}")
    finally:
        logger.info("Hotoken Reservation MCP Server stopped.")
