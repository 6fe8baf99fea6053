import pytest

from hotoken_reservation import actions, server

WEI_PER_ETH = 10**18


@pytest.fixture
def client(monkeypatch, reservation):
    monkeypatch.setattr(server, "reservation", reservation)
    actions.app.config["TESTING"] = True
    with actions.app.test_client() as client:
        yield client


def test_preflight(client):
    response = client.options("/purchase_action", headers={"Origin": "https://wallet.example"})
    assert response.status_code == 204
    assert "POST" in response.headers["Access-Control-Allow-Methods"]
    assert response.headers["Access-Control-Allow-Origin"]


def test_action_metadata(client):
    response = client.get("/purchase_action")
    assert response.status_code == 200
    body = response.get_json()
    assert body["title"] == actions.ACTION_TITLE
    assert body["sale"]["funding_currency"] == "ETH"
    assert body["sale"]["usd_rate"] == 400
    assert body["sale"]["minimum_purchase"] == 50000
    assert [parameter["name"] for parameter in body["parameters"]] == ["account", "value"]


def test_cors_origin_is_restricted(monkeypatch):
    monkeypatch.setattr(actions.config, "CORS_ALLOWED_ORIGINS", ["https://allowed.example"])
    assert actions.get_cors_headers("https://allowed.example")["Access-Control-Allow-Origin"] == "https://allowed.example"
    assert actions.get_cors_headers("https://evil.example")["Access-Control-Allow-Origin"] == "https://allowed.example"


def test_purchase(client, reservation, owner, accounts):
    reservation.add_to_whitelist(owner, accounts[1])

    response = client.post("/purchase_action", json={"account": accounts[1], "value": str(WEI_PER_ETH)})

    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "committed"
    assert body["logs"][0]["amount"] == 10 * 400 * WEI_PER_ETH
    assert reservation.balance_of(accounts[1]) == 10 * 400 * WEI_PER_ETH


def test_reverted_purchase_returns_conflict(client, reservation, accounts):
    response = client.post("/purchase_action", json={"account": accounts[2], "value": WEI_PER_ETH})
    assert response.status_code == 409
    assert response.get_json()["error"] == "NotWhitelistedError"
    assert reservation.get_token_sold() == 0


def test_purchase_requires_json(client):
    response = client.post("/purchase_action", data="account=0x1", content_type="application/x-www-form-urlencoded")
    assert response.status_code == 415


@pytest.mark.parametrize(
    "payload,message",
    [
        ({"value": 1}, "Account must be a non-empty string"),
        ({"account": "0x1", "value": "lots"}, "Value must be a valid integer"),
        ({"account": "0x1", "value": 0}, "Value must be positive"),
    ],
)
def test_purchase_payload_validation(client, payload, message):
    response = client.post("/purchase_action", json=payload)
    assert response.status_code == 400
    assert response.get_json()["message"] == message


def test_balance(client, reservation, owner, accounts):
    reservation.add_to_whitelist(owner, accounts[1])
    reservation.purchase(accounts[1], WEI_PER_ETH)

    response = client.get(f"/balances/{accounts[1]}")

    assert response.status_code == 200
    body = response.get_json()
    assert body["balance"] == 10 * 400 * WEI_PER_ETH
    assert body["whitelisted"] is True
    assert body["ledger"]["raw_amount"] == WEI_PER_ETH


def test_balance_of_malformed_address(client):
    response = client.get("/balances/not-an-address")
    assert response.status_code == 400
