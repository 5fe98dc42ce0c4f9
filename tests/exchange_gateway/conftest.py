"""
Shared fixtures for exchange gateway tests.

Adapters run against MockTransport with a fake clock whose sleep
advances time instantly, so nothing touches the network or waits.
"""

import random

import pytest

from exchange_gateway import (
    AdapterConfig,
    MockTransport,
    RetryConfig,
    ZBAdapter,
    create_tidex_adapter,
    create_yobit_adapter,
)


START_TIME = 1_500_000_000.0


class FakeClock:
    """Callable clock with an instant async sleep."""

    def __init__(self, start: float = START_TIME):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_config(**overrides) -> AdapterConfig:
    values = dict(
        api_key="key",
        api_secret="secret",
        password="fundpassword",
        enable_rate_limit=False,
        retry=RetryConfig(
            max_retries=2,
            initial_delay_seconds=1.0,
            backoff_multiplier=2.0,
            jitter_ratio=0.0,
        ),
    )
    values.update(overrides)
    return AdapterConfig(**values)


def adapter_kwargs(clock: FakeClock):
    return dict(clock=clock, monotonic=clock, sleep=clock.sleep, rng=random.Random(7))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return MockTransport()


@pytest.fixture
def build(transport, clock):
    """Build an adapter on the shared transport with config overrides."""
    def _build(builder, **config_overrides):
        return builder(make_config(**config_overrides), transport, **adapter_kwargs(clock))
    return _build


@pytest.fixture
def zb(transport, clock):
    return ZBAdapter(make_config(), transport, **adapter_kwargs(clock))


@pytest.fixture
def yobit(transport, clock):
    return create_yobit_adapter(make_config(), transport, **adapter_kwargs(clock))


@pytest.fixture
def tidex(transport, clock):
    return create_tidex_adapter(make_config(), transport, **adapter_kwargs(clock))


# ============================================================
# SAMPLE PAYLOADS
# ============================================================

ZB_MARKETS = {
    "btc_usdt": {"amountScale": 4, "priceScale": 2},
    "eth_btc": {"amountScale": 3, "priceScale": 6},
}

LIQUI_INFO = {
    "server_time": 1500000000,
    "pairs": {
        "btc_usd": {
            "decimal_places": 8,
            "min_price": 0.1,
            "max_price": 100000,
            "min_amount": 0.001,
            "max_amount": 1000,
            "min_total": 1,
            "hidden": 0,
            "fee": 0.2,
        },
        "ltc_btc": {
            "decimal_places": 8,
            "min_price": 0.00000001,
            "max_price": 10,
            "min_amount": 0.01,
            "max_amount": 100000,
            "min_total": 0.0001,
            "hidden": 0,
            "fee": 0.2,
        },
        "dsh_btc": {
            "decimal_places": 6,
            "min_price": 0.000001,
            "max_price": 10,
            "min_amount": 0.01,
            "max_amount": 100000,
            "min_total": 0.0001,
            "hidden": 1,
            "fee": 0.2,
        },
    },
}

TIDEX_CURRENCIES = [
    {
        "id": 1,
        "symbol": "BTC",
        "name": "Bitcoin",
        "amountPoint": 8,
        "visible": True,
        "withdrawEnable": True,
        "depositEnable": True,
        "withdrawFee": 0.001,
        "withdrawMinAmout": 0.01,
        "depositMinAmount": 0.0001,
    },
    {
        "id": 2,
        "symbol": "EMGO",
        "name": "MobileGo (ETH)",
        "amountPoint": 6,
        "visible": True,
        "withdrawEnable": False,
        "depositEnable": True,
        "withdrawFee": 1,
        "withdrawMinAmout": 10,
        "depositMinAmount": 1,
    },
    {
        "id": 3,
        "symbol": "LTC",
        "name": "Litecoin",
        "amountPoint": 8,
        "visible": False,
        "withdrawEnable": True,
        "depositEnable": True,
        "withdrawFee": 0.01,
        "withdrawMinAmout": 0.1,
        "depositMinAmount": 0.01,
    },
]


@pytest.fixture
def zb_markets(transport):
    transport.add_response("/v1/markets", ZB_MARKETS)
    return ZB_MARKETS


@pytest.fixture
def liqui_markets(transport):
    transport.add_response("/info", LIQUI_INFO)
    transport.add_response("/currency", TIDEX_CURRENCIES)
    return LIQUI_INFO
