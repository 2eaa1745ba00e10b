from dataclasses import dataclass

from basescan import (
    API_KEYS,
    END_BLOCK,
    MAX_RESULT_COUNT,
    RATE_LIMITED,
    UpstreamError,
    build_query,
    fetch_with_retry,
)

CATEGORY_ACTIONS = ("txlist", "txlistinternal", "tokentx", "tokennfttx")

COMPLETE = "complete"
PARTIAL = "partial"
FAILED = "failed"


@dataclass(frozen=True)
class QueryStrategy:
    start_block: int
    end_block: int
    sort: str = "asc"

    def describe(self) -> str:
        return f"{self.start_block}-{self.end_block} {self.sort}"


BASELINE_STRATEGY = QueryStrategy(0, END_BLOCK, "asc")

# Extra queries for categories that can exceed the 10k result cap.
# Block windows cover the densest Base activity seen so far; the
# descending full-range query exposes a different slice near the cap.
SUPPLEMENTAL_STRATEGIES = {
    "tokentx": (
        QueryStrategy(20_000_000, 30_000_000, "asc"),
        QueryStrategy(30_000_000, 40_000_000, "asc"),
        QueryStrategy(0, END_BLOCK, "desc"),
    ),
}


@dataclass(frozen=True)
class CategoryResult:
    action: str
    transactions: tuple
    status: str = COMPLETE
    queries: int = 0


# ── Deduplication ──────────────────────────────────────────────────────────
HASHLESS_IDENTITY_FIELDS = ("timeStamp", "from", "to", "value", "contractAddress", "tokenID")


def tx_identity(tx: dict):
    """The tx hash, or a tuple of core fields for records that lack one."""
    tx_hash = tx.get("hash")
    if tx_hash:
        return tx_hash
    return tuple(str(tx.get(name, "")) for name in HASHLESS_IDENTITY_FIELDS)


def filter_new_transactions(seen_hashes: set, batch: list) -> list:
    """Return records from batch whose identity is not in seen_hashes.

    Repeats inside the batch are dropped as well.
    """
    seen = set(seen_hashes)
    new_txs = []
    for tx in batch:
        identity = tx_identity(tx)
        if identity in seen:
            continue
        seen.add(identity)
        new_txs.append(tx)
    return new_txs


def merge_transactions(accumulated: list, batch: list) -> list:
    """Append only unseen records of batch to accumulated (returns a new list)."""
    seen_hashes = {tx_identity(tx) for tx in accumulated}
    return list(accumulated) + filter_new_transactions(seen_hashes, batch)


# ── Collection ─────────────────────────────────────────────────────────────
def run_strategy(address: str, action: str, strategy: QueryStrategy, fetch=fetch_with_retry):
    query = build_query(address, action, strategy.start_block, strategy.end_block, strategy.sort)
    return fetch(query)


def fetch_transactions(address: str, action: str, fetch=fetch_with_retry) -> CategoryResult:
    """Fetch one category, working around the upstream 10k result cap.

    A baseline full-range query always runs. When it comes back capped and
    the category has supplemental strategies, each one is queried in order
    and only records with unseen hashes are merged in.
    """
    print(f"[Collector] Fetching {action} for {address}...", flush=True)
    status = COMPLETE

    try:
        baseline = run_strategy(address, action, BASELINE_STRATEGY, fetch)
    except UpstreamError as e:
        print(f"[Collector] {action} baseline failed: {e}", flush=True)
        return CategoryResult(action, (), FAILED, 1)

    queries = 1
    if baseline.kind == RATE_LIMITED:
        print(f"[Collector] {action} still rate limited after retries, continuing with no data", flush=True)
        status = PARTIAL

    transactions = merge_transactions([], baseline.records)
    print(f"[Collector] {action} baseline: {len(baseline.records)} records", flush=True)

    if len(baseline.records) >= MAX_RESULT_COUNT:
        strategies = SUPPLEMENTAL_STRATEGIES.get(action, ())
        if not strategies:
            print(f"[Collector] {action} hit the {MAX_RESULT_COUNT} cap, result may be truncated", flush=True)
            status = PARTIAL
        else:
            print(f"[Collector] {action} hit the {MAX_RESULT_COUNT} cap, applying {len(strategies)} extra strategies", flush=True)

        for strategy in strategies:
            queries += 1
            try:
                extra = run_strategy(address, action, strategy, fetch)
            except UpstreamError as e:
                print(f"[Collector] {action} {strategy.describe()} failed: {e}", flush=True)
                status = PARTIAL
                continue
            if extra.kind == RATE_LIMITED:
                status = PARTIAL

            before = len(transactions)
            transactions = merge_transactions(transactions, extra.records)
            added = len(transactions) - before
            if added:
                print(f"[Collector] {action} {strategy.describe()}: {added} new records", flush=True)

    print(f"[Collector] {action} total: {len(transactions)} records ({status})", flush=True)
    return CategoryResult(action, tuple(transactions), status, queries)


def collect_wallet_activity(address: str, fetch=fetch_with_retry) -> dict[str, CategoryResult]:
    """Fetch all four categories one after another (they share one rate limit)."""
    return {action: fetch_transactions(address, action, fetch) for action in CATEGORY_ACTIONS}


def main() -> None:
    from activity import InvalidAddressError, analyze_wallet
    from analyze import fmt_eth

    if not API_KEYS:
        print("Warning: no BASESCAN_API_KEY in .env file, requests will be heavily rate limited")
    else:
        print(f"Loaded {len(API_KEYS)} API key(s)")

    wallet = input("Enter wallet address: ").strip()
    if not wallet:
        print("Address cannot be empty.")
        return

    try:
        profile = analyze_wallet(wallet)
    except InvalidAddressError as e:
        print(f"Error: {e}")
        return

    counts = profile.counts
    print(f"\n✓ Analysis completed in {profile.analysis_time_ms}ms")
    print(f"Transactions: {counts.total} total")
    print(f"  normal: {counts.normal_tx}  internal: {counts.internal_tx}  "
          f"token: {counts.token_tx}  nft: {counts.nft_tx}")

    failed = [action for action, status in profile.category_status.items() if status != COMPLETE]
    if failed:
        print(f"  incomplete categories: {', '.join(f'{a} ({profile.category_status[a]})' for a in failed)}")

    eth = profile.eth_stats
    print(f"\nETH received: {fmt_eth(eth.received)}")
    print(f"ETH sent:     {fmt_eth(eth.sent)}")
    print(f"Gas paid:     {fmt_eth(eth.gas_paid)}")
    print(f"Net:          {fmt_eth(eth.net)}")

    adv = profile.advanced_stats
    print(f"\nSince: {adv.since_formatted}")
    print(f"Active age: {adv.active_age_formatted}")
    print(f"Unique days: {adv.unique_days}")
    print(f"Longest streak: {adv.longest_streak} days")

    top_tokens = sorted(profile.token_stats.values(), key=lambda t: t["transfers"], reverse=True)[:10]
    if top_tokens:
        print(f"\nTop {len(top_tokens)} tokens by transfers:")
        for token in top_tokens:
            print(f"  {token['symbol'] or '?':12s} {token['transfers']} transfers")


if __name__ == "__main__":
    main()
