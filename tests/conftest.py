"""
Pytest fixtures for the wallet analyzer tests. Upstream calls are replaced
by scripted fetchers and sleeps are recorded instead of slept.
"""

from __future__ import annotations

import pytest

from basescan import ApiKeyPool, RequestThrottle

WALLET = "0x9b99b5EF89b5532263091ee2f61C93B263E8c15B"
OTHER = "0x1111111111111111111111111111111111111111"


def make_tx(tx_hash, ts=1704110400, frm=OTHER, to=WALLET, value="0", **extra):
    tx = {"hash": tx_hash, "timeStamp": str(ts), "from": frm, "to": to, "value": str(value)}
    tx.update(extra)
    return tx


class ScriptedFetcher:
    """Stands in for fetch_page: returns queued results and records each call."""

    def __init__(self, results):
        self.results = list(results)
        self.calls = []

    def __call__(self, query, api_key):
        self.calls.append((dict(query), api_key))
        return self.results.pop(0)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def pool():
    return ApiKeyPool(["key-one-aaaa", "key-two-bbbb", "key-three-cc"])


@pytest.fixture
def throttle():
    return RequestThrottle(0)
