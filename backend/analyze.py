"""
Statistics over a wallet's deduplicated Basescan records: ETH balance
deltas, daily activity heatmap, active age / unique days / streaks and
per-token and per-NFT-collection tallies.
"""

from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

WEI_PER_ETH_EXPONENT = 18
SECONDS_PER_DAY = 86400


# ── Helpers ────────────────────────────────────────────────────────────────
def parse_int(value) -> int:
    """Parse an upstream numeric string; missing or garbage values count as 0."""
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def tx_timestamp(tx: dict) -> int | None:
    value = tx.get("timeStamp")
    if value is None or value == "":
        return None
    try:
        ts = int(value)
        # Rejects values outside the platform's datetime range
        datetime.fromtimestamp(ts, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None
    return ts


def ts_to_date(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d")


def same_address(a, b) -> bool:
    return bool(a) and bool(b) and a.lower() == b.lower()


def fmt_eth(wei: int) -> str:
    eth = Decimal(wei).scaleb(-WEI_PER_ETH_EXPONENT)
    return f"{eth.quantize(Decimal('0.000001'), rounding=ROUND_HALF_UP)} ETH"


def format_since(since: datetime | None) -> str:
    """Format like 'Mon, Jan 1, 2024'."""
    if since is None:
        return "N/A"
    return f"{since:%a}, {since:%b} {since.day}, {since.year}"


def format_active_age(days) -> str:
    """Basescan-style age. Years are a flat 365 days."""
    if days < 1:
        return "Less than 1 day"

    days = int(days)
    years = days // 365
    remaining_days = days % 365

    if years > 0:
        return f"{years} Year{'s' if years > 1 else ''} {remaining_days} Day{'s' if remaining_days != 1 else ''}"
    return f"{days} Day{'s' if days != 1 else ''}"


# ── ETH balance ────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class EthStats:
    received: int = 0
    sent: int = 0
    gas_paid: int = 0

    @property
    def net(self) -> int:
        return self.received - self.sent - self.gas_paid


def calculate_eth_stats(txlist: list, txlistinternal: list, address: str) -> EthStats:
    received = 0
    sent = 0
    gas_paid = 0

    for tx in txlist:
        value = parse_int(tx.get("value"))
        if same_address(tx.get("to"), address):
            received += value
        if same_address(tx.get("from"), address):
            sent += value
            # Gas is only paid by the sender
            gas_paid += parse_int(tx.get("gasUsed")) * parse_int(tx.get("gasPrice"))

    for tx in txlistinternal:
        value = parse_int(tx.get("value"))
        if same_address(tx.get("to"), address):
            received += value
        if same_address(tx.get("from"), address):
            sent += value

    return EthStats(received=received, sent=sent, gas_paid=gas_paid)


# ── Activity over time ─────────────────────────────────────────────────────
def valid_timestamps(*groups) -> list[int]:
    timestamps = []
    for txs in groups:
        for tx in txs:
            ts = tx_timestamp(tx)
            if ts is not None:
                timestamps.append(ts)
    return timestamps


def calculate_activity_heatmap(*groups) -> dict[str, int]:
    """Count records per UTC calendar day (YYYY-MM-DD), oldest day first."""
    days = {}
    for ts in valid_timestamps(*groups):
        day = ts_to_date(ts)
        days[day] = days.get(day, 0) + 1
    return OrderedDict(sorted(days.items()))


def longest_streak(days) -> int:
    """Length of the longest run of consecutive calendar days."""
    ordered = sorted({date.fromisoformat(d) if isinstance(d, str) else d for d in days})
    if not ordered:
        return 0

    best = 1
    current = 1
    for prev, curr in zip(ordered, ordered[1:]):
        if curr - prev == timedelta(days=1):
            current += 1
        else:
            current = 1
        best = max(best, current)
    return best


@dataclass(frozen=True)
class AdvancedStats:
    since: datetime | None = None
    last_activity: datetime | None = None
    active_age: int = 0
    unique_days: int = 0
    longest_streak: int = 0


def calculate_advanced_stats(*groups) -> AdvancedStats:
    timestamps = valid_timestamps(*groups)
    if not timestamps:
        return AdvancedStats()

    first_ts = min(timestamps)
    last_ts = max(timestamps)
    active_days = {ts_to_date(ts) for ts in timestamps}

    return AdvancedStats(
        since=datetime.fromtimestamp(first_ts, tz=timezone.utc),
        last_activity=datetime.fromtimestamp(last_ts, tz=timezone.utc),
        active_age=(last_ts - first_ts) // SECONDS_PER_DAY,
        unique_days=len(active_days),
        longest_streak=longest_streak(active_days),
    )


# ── Tokens & NFTs ──────────────────────────────────────────────────────────
def calculate_token_stats(tokentx: list, tokennfttx: list, address: str) -> tuple[dict, dict]:
    """Group token and NFT transfers by contract address.

    A transfer counts as received when the wallet is the recipient and as
    sent when it is the sender; a self-transfer counts as both.
    """
    token_stats = {}
    nft_stats = {}

    for tx in tokentx:
        key = (tx.get("contractAddress") or "").lower()
        if key not in token_stats:
            token_stats[key] = {
                "symbol": tx.get("tokenSymbol", ""),
                "name": tx.get("tokenName", ""),
                "decimals": parse_int(tx.get("tokenDecimal")),
                "received": 0,
                "sent": 0,
                "transfers": 0,
            }
        stats = token_stats[key]
        value = parse_int(tx.get("value"))
        stats["transfers"] += 1
        if same_address(tx.get("to"), address):
            stats["received"] += value
        if same_address(tx.get("from"), address):
            stats["sent"] += value

    for tx in tokennfttx:
        key = (tx.get("contractAddress") or "").lower()
        if key not in nft_stats:
            nft_stats[key] = {
                "symbol": tx.get("tokenSymbol", ""),
                "name": tx.get("tokenName", ""),
                "count": 0,
            }
        nft_stats[key]["count"] += 1

    return token_stats, nft_stats
