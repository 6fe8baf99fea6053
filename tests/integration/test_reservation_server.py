import json
from unittest.mock import MagicMock, patch

import pytest

from hotoken_reservation import server

WEI_PER_ETH = 10**18


@pytest.fixture(autouse=True)
def served_reservation(monkeypatch, reservation):
    """Points the MCP tools at a freshly deployed sale."""
    monkeypatch.setattr(server, "reservation", reservation)
    return reservation


@pytest.fixture
def mock_context():
    return MagicMock()


@pytest.mark.asyncio
async def test_get_sale_info(mock_context, owner):
    result = json.loads(await server.get_sale_info(context=mock_context))
    assert result["owner"] == owner
    assert result["funding_currency"] == "ETH"
    assert result["usd_rates"] == {"ETH": 400, "BTC": 11000, "USD": 1}
    assert result["discount_rate"] == 0
    assert result["minimum_purchase"] == 50000
    assert result["token_sold"] == 0
    assert result["pause_enabled"] is False


@pytest.mark.asyncio
async def test_whitelist_tools(mock_context, owner, accounts):
    receipt = json.loads(await server.add_to_whitelist(context=mock_context, caller=owner, address=accounts[1]))
    assert receipt["status"] == "committed"
    assert receipt["operation"] == "add_to_whitelist"

    result = json.loads(await server.exists_in_whitelist(context=mock_context, address=accounts[1]))
    assert result == {"operation": "exists_in_whitelist", "result": True}

    receipt = json.loads(await server.remove_from_whitelist(context=mock_context, caller=owner, address=accounts[1]))
    assert receipt["status"] == "committed"
    result = json.loads(await server.exists_in_whitelist(context=mock_context, address=accounts[1]))
    assert result["result"] is False


@pytest.mark.asyncio
async def test_batch_whitelist_tools(mock_context, owner, accounts, served_reservation):
    receipt = json.loads(
        await server.add_many_to_whitelist(context=mock_context, caller=owner, addresses=accounts[1:])
    )
    assert receipt["status"] == "committed"
    assert all(served_reservation.exists_in_whitelist(account) for account in accounts[1:])

    receipt = json.loads(
        await server.remove_many_from_whitelist(context=mock_context, caller=owner, addresses=accounts[1:3])
    )
    assert receipt["status"] == "committed"
    assert not served_reservation.exists_in_whitelist(accounts[1])
    assert served_reservation.exists_in_whitelist(accounts[3])


@pytest.mark.asyncio
async def test_batch_too_large_is_rejected(mock_context, owner, served_reservation):
    addresses = [hex(i) for i in range(1, server.MAX_BATCH_SIZE + 2)]
    result = await server.add_many_to_whitelist(context=mock_context, caller=owner, addresses=addresses)
    assert result.startswith("Error: At most")
    assert not served_reservation.exists_in_whitelist("0x1")


@pytest.mark.asyncio
async def test_non_owner_receives_reverted_receipt(mock_context, accounts):
    receipt = json.loads(
        await server.set_discount_rate(context=mock_context, caller=accounts[1], index=2)
    )
    assert receipt["status"] == "reverted"
    assert receipt["error"] == "UnauthorizedError"
    assert receipt["logs"] == []


@pytest.mark.asyncio
async def test_rate_and_discount_tools(mock_context, owner):
    receipt = json.loads(await server.set_usd_rate(context=mock_context, caller=owner, symbol="BTC", rate=12000))
    assert receipt["status"] == "committed"
    result = json.loads(await server.get_usd_rate(context=mock_context, symbol="BTC"))
    assert result["result"] == 12000

    await server.set_discount_rate(context=mock_context, caller=owner, index=2)
    result = json.loads(await server.get_discount_rate(context=mock_context))
    assert result["result"] == 20

    receipt = json.loads(await server.set_discount_rate(context=mock_context, caller=owner, index=4))
    assert receipt["error"] == "InvalidDiscountError"


@pytest.mark.asyncio
async def test_get_usd_rate_of_unknown_currency(mock_context):
    result = await server.get_usd_rate(context=mock_context, symbol="DOGE")
    assert result.startswith("Error: UnknownCurrencyError")


@pytest.mark.asyncio
async def test_invalid_symbol_is_rejected_before_the_engine(mock_context, owner):
    result = await server.set_usd_rate(context=mock_context, caller=owner, symbol="", rate=5)
    assert result == "Error: Currency symbol must be a non-empty string"

    result = await server.set_usd_rate(context=mock_context, caller=owner, symbol="X" * 17, rate=5)
    assert result == "Error: Currency symbol is too long"


@pytest.mark.asyncio
async def test_minimum_purchase_tools(mock_context, owner):
    await server.set_minimum_purchase(context=mock_context, caller=owner, amount=10000)
    result = json.loads(await server.get_minimum_purchase(context=mock_context))
    assert result["result"] == 10000


@pytest.mark.asyncio
async def test_send_value(mock_context, owner, accounts, served_reservation):
    await server.add_to_whitelist(context=mock_context, caller=owner, address=accounts[1])
    value = 2 * WEI_PER_ETH

    receipt = json.loads(await server.send_value(context=mock_context, sender=accounts[1], value=value))

    assert receipt["status"] == "committed"
    assert receipt["operation"] == "purchase"
    event = receipt["logs"][0]
    assert event["event"] == "TokenPurchase"
    assert event["purchaser"] == accounts[1]
    assert event["value"] == value
    assert event["amount"] == 10 * 400 * value

    balance = json.loads(await server.balance_of(context=mock_context, address=accounts[1]))
    assert balance["result"] == 10 * 400 * value
    sold = json.loads(await server.get_token_sold(context=mock_context))
    assert sold["result"] == 10 * 400 * value

    record = json.loads(await server.get_ledger_record(context=mock_context, address=accounts[1]))
    assert record["result"] == {"currency": "ETH", "raw_amount": value, "token_amount": 10 * 400 * value, "exists": True}
    assert served_reservation.settlement.balance_of(owner) == 1000 * WEI_PER_ETH + value


@pytest.mark.asyncio
async def test_send_value_from_non_whitelisted_sender(mock_context, accounts):
    receipt = json.loads(await server.send_value(context=mock_context, sender=accounts[2], value=WEI_PER_ETH))
    assert receipt["status"] == "reverted"
    assert receipt["error"] == "NotWhitelistedError"


@pytest.mark.asyncio
async def test_ledger_tools(mock_context, owner, accounts):
    result = json.loads(await server.exists_in_ledger(context=mock_context, address=accounts[3]))
    assert result["result"] is False
    result = json.loads(await server.get_ledger_record(context=mock_context, address=accounts[3]))
    assert result["result"] is None

    receipt = json.loads(
        await server.add_to_ledger(
            context=mock_context, caller=owner, address=accounts[3], symbol="BTC", raw_amount=3, token_amount=900
        )
    )
    assert receipt["status"] == "committed"
    result = json.loads(await server.exists_in_ledger(context=mock_context, address=accounts[3]))
    assert result["result"] is True


@pytest.mark.asyncio
async def test_pause_and_transfer_tools(mock_context, owner, accounts):
    receipt = json.loads(await server.transfer(context=mock_context, caller=owner, to=accounts[4], amount=500))
    assert receipt["error"] == "DistributionWindowClosedError"

    await server.set_pause_enabled(context=mock_context, caller=owner, enabled=True)
    result = json.loads(await server.is_pause_enabled(context=mock_context))
    assert result["result"] is True

    receipt = json.loads(await server.transfer(context=mock_context, caller=owner, to=accounts[4], amount=500))
    assert receipt["status"] == "committed"
    distributed = json.loads(await server.get_token_distributed(context=mock_context))
    assert distributed["result"] == 500


@pytest.mark.asyncio
async def test_malformed_address_in_query(mock_context):
    result = await server.balance_of(context=mock_context, address="nope")
    assert result.startswith("Error: ValidationError")


@pytest.mark.asyncio
async def test_unexpected_error_is_not_exposed(mock_context, owner, served_reservation):
    with patch.object(served_reservation, "set_minimum_purchase", side_effect=RuntimeError("disk on fire")):
        result = await server.set_minimum_purchase(context=mock_context, caller=owner, amount=1)
    assert result == "An unexpected server error occurred during set_minimum_purchase."
    assert "disk on fire" not in result
