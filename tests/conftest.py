import pytest

from hotoken_reservation.reservation import HotokenReservation
from hotoken_reservation.settlement import InMemoryValueLedger

WEI_PER_ETH = 10**18

# Deterministic development accounts; the first one owns the sale.
ACCOUNTS = [
    "0x90f8bf6a479f320ead074411a4b0e7944ea8c9c1",
    "0xffcf8fdee72ac11b5c542428b35eef5769c409f0",
    "0x22d491bde2303f2f43325b2108d26f1eaba1e32b",
    "0xe11ba2b4d45eaed5996cd0823791e0c93114882d",
    "0xd03ea8624c8c5987235048901fb614fdca89b117",
]
OWNER = ACCOUNTS[0]

HTKN_PER_ETH = 10
TOTAL_SUPPLY = 10**27
USD_RATES = {"ETH": 400, "BTC": 11000, "USD": 1}


def to_wei(amount_ether: int) -> int:
    return amount_ether * WEI_PER_ETH


@pytest.fixture
def accounts():
    return list(ACCOUNTS)


@pytest.fixture
def owner():
    return OWNER


@pytest.fixture
def value_ledger():
    """External balances: every account starts with 1000 ether."""
    return InMemoryValueLedger({account: to_wei(1000) for account in ACCOUNTS})


@pytest.fixture
def reservation(value_ledger):
    """A freshly deployed sale with the reference configuration."""
    return HotokenReservation.deploy(
        owner=OWNER,
        settlement=value_ledger,
        total_supply=TOTAL_SUPPLY,
        htkn_per_eth=HTKN_PER_ETH,
        minimum_purchase=50000,
        usd_rates=USD_RATES,
        funding_currency="ETH",
    )
