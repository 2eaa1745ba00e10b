"""
Assembles the activity profile for one wallet from collected Basescan data.
"""

import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType

from analyze import (
    AdvancedStats,
    EthStats,
    calculate_activity_heatmap,
    calculate_advanced_stats,
    calculate_eth_stats,
    calculate_token_stats,
    fmt_eth,
    format_active_age,
    format_since,
)
from main import CATEGORY_ACTIONS, CategoryResult, collect_wallet_activity

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


class InvalidAddressError(ValueError):
    pass


def is_valid_address(address) -> bool:
    return isinstance(address, str) and bool(ADDRESS_RE.match(address))


@dataclass(frozen=True)
class TransactionCounts:
    normal_tx: int = 0
    internal_tx: int = 0
    token_tx: int = 0
    nft_tx: int = 0

    @property
    def total(self) -> int:
        return self.normal_tx + self.internal_tx + self.token_tx + self.nft_tx


@dataclass(frozen=True)
class AdvancedSummary:
    since: datetime | None
    last_activity: datetime | None
    since_formatted: str
    active_age: int
    active_age_formatted: str
    unique_days: int
    longest_streak: int

    @classmethod
    def from_stats(cls, stats: AdvancedStats) -> "AdvancedSummary":
        return cls(
            since=stats.since,
            last_activity=stats.last_activity,
            since_formatted=format_since(stats.since),
            active_age=stats.active_age,
            active_age_formatted=format_active_age(stats.active_age),
            unique_days=stats.unique_days,
            longest_streak=stats.longest_streak,
        )


def _iso(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class ActivityProfile:
    address: str
    counts: TransactionCounts
    eth_stats: EthStats
    advanced_stats: AdvancedSummary
    activity_heatmap: MappingProxyType
    token_stats: MappingProxyType
    nft_stats: MappingProxyType
    category_status: MappingProxyType
    txlist: tuple = ()
    txlistinternal: tuple = ()
    tokentx: tuple = ()
    tokennfttx: tuple = ()
    analysis_time_ms: int = 0
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        """JSON-ready view; wei amounts are strings so they survive JSON clients."""
        eth = self.eth_stats
        adv = self.advanced_stats
        return {
            "address": self.address,
            "counts": {
                "normalTx": self.counts.normal_tx,
                "internalTx": self.counts.internal_tx,
                "tokenTx": self.counts.token_tx,
                "tokenNftTx": self.counts.nft_tx,
                "total": self.counts.total,
            },
            "txlist": list(self.txlist),
            "txlistinternal": list(self.txlistinternal),
            "tokentx": list(self.tokentx),
            "tokennfttx": list(self.tokennfttx),
            "ethStats": {
                "received": str(eth.received),
                "sent": str(eth.sent),
                "gasPaid": str(eth.gas_paid),
                "net": str(eth.net),
                "receivedFormatted": fmt_eth(eth.received),
                "sentFormatted": fmt_eth(eth.sent),
                "gasPaidFormatted": fmt_eth(eth.gas_paid),
                "netFormatted": fmt_eth(eth.net),
            },
            "advancedStats": {
                "since": _iso(adv.since),
                "sinceFormatted": adv.since_formatted,
                "lastActivity": _iso(adv.last_activity),
                "activeAge": adv.active_age,
                "activeAgeFormatted": adv.active_age_formatted,
                "uniqueDays": adv.unique_days,
                "longestStreak": adv.longest_streak,
            },
            "activityHeatmap": dict(self.activity_heatmap),
            "tokenStats": {
                contract: {**stats, "received": str(stats["received"]), "sent": str(stats["sent"])}
                for contract, stats in self.token_stats.items()
            },
            "nftStats": {contract: dict(stats) for contract, stats in self.nft_stats.items()},
            "categoryStatus": dict(self.category_status),
            "analysisTime": f"{self.analysis_time_ms}ms",
            "timestamp": _iso(self.generated_at),
        }


def _read_only(stats: dict) -> MappingProxyType:
    return MappingProxyType({key: MappingProxyType(dict(value)) for key, value in stats.items()})


def build_activity_profile(address: str, categories: dict[str, CategoryResult], analysis_time_ms: int = 0) -> ActivityProfile:
    """Run the statistics over collected categories and freeze the result."""
    groups = {action: categories[action].transactions if action in categories else () for action in CATEGORY_ACTIONS}
    txlist = groups["txlist"]
    txlistinternal = groups["txlistinternal"]
    tokentx = groups["tokentx"]
    tokennfttx = groups["tokennfttx"]

    token_stats, nft_stats = calculate_token_stats(tokentx, tokennfttx, address)

    return ActivityProfile(
        address=address,
        counts=TransactionCounts(
            normal_tx=len(txlist),
            internal_tx=len(txlistinternal),
            token_tx=len(tokentx),
            nft_tx=len(tokennfttx),
        ),
        eth_stats=calculate_eth_stats(txlist, txlistinternal, address),
        advanced_stats=AdvancedSummary.from_stats(calculate_advanced_stats(txlist, txlistinternal, tokentx, tokennfttx)),
        activity_heatmap=MappingProxyType(dict(calculate_activity_heatmap(txlist, txlistinternal, tokentx, tokennfttx))),
        token_stats=_read_only(token_stats),
        nft_stats=_read_only(nft_stats),
        category_status=MappingProxyType({
            action: categories[action].status if action in categories else "failed"
            for action in CATEGORY_ACTIONS
        }),
        txlist=tuple(txlist),
        txlistinternal=tuple(txlistinternal),
        tokentx=tuple(tokentx),
        tokennfttx=tuple(tokennfttx),
        analysis_time_ms=analysis_time_ms,
    )


def analyze_wallet(address: str, collect=collect_wallet_activity) -> ActivityProfile:
    """Validate the address, fetch every category and build the profile."""
    if not is_valid_address(address):
        raise InvalidAddressError(f"Invalid wallet address: {address!r}")

    print(f"[Analyze] Analyzing wallet {address}", flush=True)
    started = time.monotonic()

    categories = collect(address)
    duration_ms = int((time.monotonic() - started) * 1000)
    profile = build_activity_profile(address, categories, analysis_time_ms=duration_ms)

    counts = profile.counts
    print(
        f"[Analyze] Done for {address} in {duration_ms}ms: "
        f"normal={counts.normal_tx} internal={counts.internal_tx} "
        f"token={counts.token_tx} nft={counts.nft_tx} total={counts.total}",
        flush=True,
    )
    return profile
