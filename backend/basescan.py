"""
Basescan (Etherscan V2) access layer: API key pool, global request
throttle, single-query client and the retry/key-rotation controller.
"""

import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path

import requests
from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).parent.parent / ".env")

# ── Configuration ──────────────────────────────────────────────────────────
API_URL = os.getenv("BASESCAN_API_URL", "https://api.etherscan.io/v2/api")
CHAIN_ID = os.getenv("BASESCAN_CHAIN_ID", "8453")  # Base mainnet
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", 10))
RETRY_ATTEMPTS = max(1, int(os.getenv("RETRY_ATTEMPTS", 3)))
RATE_LIMIT_DELAY = float(os.getenv("RATE_LIMIT_DELAY", 0.5))
MAX_RESULT_COUNT = int(os.getenv("MAX_RESULT_COUNT", 10000))
END_BLOCK = int(os.getenv("END_BLOCK", 99999999))

RATE_LIMIT_MARKER = "rate limit reached"


class UpstreamError(Exception):
    """Raised when a query keeps failing after all retry attempts."""


def mask_key(key: str) -> str:
    return f"{key[:8]}..." if key else "<none>"


class ApiKeyPool:
    """Round-robin pool of API keys shared by every analysis in the process.

    Concurrent analyses may race on the cursor; rotation only spreads load.
    """

    def __init__(self, keys: list[str]):
        self.keys = list(keys)
        self._index = 0
        self._lock = threading.Lock()

    @classmethod
    def from_env(cls, prefix: str = "BASESCAN_API_KEY") -> "ApiKeyPool":
        """Build the pool from PREFIX, PREFIX_1, PREFIX_2, ... (empty values skipped).

        Numbered keys are scanned until the first gap past index 10.
        """
        keys = [os.getenv(prefix, "")]
        for i in range(1, 100):
            key = os.getenv(f"{prefix}_{i}", "")
            if not key and i > 10:
                break
            keys.append(key)
        return cls([k for k in keys if k])

    def __len__(self) -> int:
        return len(self.keys)

    def current(self) -> str:
        if not self.keys:
            return ""
        with self._lock:
            return self.keys[self._index % len(self.keys)]

    def rotate(self) -> str:
        """Advance the cursor (wrapping) and return the new current key."""
        if not self.keys:
            return ""
        with self._lock:
            self._index = (self._index + 1) % len(self.keys)
            key = self.keys[self._index]
            position = self._index + 1
        print(f"[Basescan] Rate limited, switching to key #{position}/{len(self.keys)} ({mask_key(key)})", flush=True)
        return key


class RequestThrottle:
    """Enforces a minimum gap between any two upstream queries."""

    def __init__(self, min_interval: float, clock=time.monotonic, sleep=time.sleep):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_request = None
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            now = self._clock()
            if self._last_request is not None:
                remaining = self._last_request + self.min_interval - now
                if remaining > 0:
                    self._sleep(remaining)
                    now = self._clock()
            self._last_request = now


key_pool = ApiKeyPool.from_env()
API_KEYS = key_pool.keys
request_throttle = RequestThrottle(RATE_LIMIT_DELAY)


# ── Client ─────────────────────────────────────────────────────────────────
OK = "ok"
RATE_LIMITED = "rate_limited"
FAILED = "failed"


@dataclass
class FetchResult:
    kind: str
    records: list = field(default_factory=list)
    message: str = ""

    @classmethod
    def ok(cls, records: list, message: str = "") -> "FetchResult":
        return cls(OK, list(records), message)

    @classmethod
    def rate_limited(cls, message: str) -> "FetchResult":
        return cls(RATE_LIMITED, [], message)

    @classmethod
    def failed(cls, reason: str) -> "FetchResult":
        return cls(FAILED, [], reason)

    @property
    def is_ok(self) -> bool:
        return self.kind == OK


def build_query(address: str, action: str, start_block: int = 0, end_block: int = END_BLOCK, sort: str = "asc") -> dict:
    return {
        "module": "account",
        "action": action,
        "address": address,
        "startblock": start_block,
        "endblock": end_block,
        "sort": sort,
    }


def fetch_page(query: dict, api_key: str) -> FetchResult:
    """Run one upstream query. Every transport or parse problem becomes a failed result."""
    params = {"chainid": CHAIN_ID, **query, "apikey": api_key}
    try:
        response = requests.get(API_URL, params=params, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        return FetchResult.failed(f"request error: {e}")

    if not response.ok:
        return FetchResult.failed(f"HTTP {response.status_code}: {response.text[:200]}")

    try:
        data = response.json()
    except ValueError:
        return FetchResult.failed("invalid JSON body")
    if not isinstance(data, dict):
        return FetchResult.failed("unexpected response body")

    status = str(data.get("status", ""))
    if status not in ("0", "1"):
        return FetchResult.failed(f"unexpected status: {data.get('status')!r}")
    result = data.get("result")
    message = data.get("message") or ""

    if status == "1":
        if not isinstance(result, list):
            return FetchResult.failed(f"unexpected result type: {type(result).__name__}")
        return FetchResult.ok(result, message)

    # status "0": result carries the error text for rate limits
    text = result if isinstance(result, str) else message
    if RATE_LIMIT_MARKER in str(text).lower():
        return FetchResult.rate_limited(str(text))
    return FetchResult.ok([], str(text))


# ── Retry / key rotation ──────────────────────────────────────────────────
def fetch_with_retry(
    query: dict,
    retries: int = RETRY_ATTEMPTS,
    base_delay: float = RATE_LIMIT_DELAY,
    pool: ApiKeyPool | None = None,
    fetcher=fetch_page,
    throttle: RequestThrottle | None = None,
    sleep=time.sleep,
) -> FetchResult:
    """Execute a query with bounded sequential retries.

    Rate limits rotate the API key and, once attempts run out, return the last
    rate-limited result so the caller can continue with partial data.
    Transport failures back off by ``base_delay * attempt`` and raise
    UpstreamError after the final attempt.
    """
    if pool is None:
        pool = key_pool
    if throttle is None:
        throttle = request_throttle
    action = query.get("action", "?")
    result = FetchResult.failed("no attempts made")

    for attempt in range(1, retries + 1):
        throttle.wait()
        result = fetcher(query, pool.current())

        if result.is_ok:
            return result

        if result.kind == RATE_LIMITED:
            print(f"[Basescan] {action} attempt {attempt}/{retries}: {result.message}", flush=True)
            pool.rotate()
            if attempt < retries:
                sleep(base_delay)
                continue
            return result

        print(f"[Basescan] {action} attempt {attempt}/{retries} failed: {result.message}", flush=True)
        if attempt == retries:
            raise UpstreamError(f"{action} failed after {retries} attempts: {result.message}")
        sleep(base_delay * attempt)

    return result
