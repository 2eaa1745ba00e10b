"""
Tests for balance deltas, heatmap, advanced stats and token tallies.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from analyze import (
    AdvancedStats,
    calculate_activity_heatmap,
    calculate_advanced_stats,
    calculate_eth_stats,
    calculate_token_stats,
    fmt_eth,
    format_active_age,
    format_since,
    longest_streak,
    parse_int,
    tx_timestamp,
)
from conftest import OTHER, WALLET, make_tx

ETH = 10**18
JAN_1_2024 = 1704067200  # 2024-01-01 00:00:00 UTC
DAY = 86400


def _on_day(tx_hash, day_offset, hour=12):
    return make_tx(tx_hash, ts=JAN_1_2024 + day_offset * DAY + hour * 3600)


# ── Parsing ────────────────────────────────────────────────────────────────
@pytest.mark.parametrize("value,expected", [("42", 42), (None, 0), ("", 0), ("abc", 0), (7, 7)])
def test_parse_int(value, expected):
    assert parse_int(value) == expected


def test_tx_timestamp_invalid_values():
    assert tx_timestamp({"timeStamp": "1704067200"}) == 1704067200
    assert tx_timestamp({"timeStamp": "not-a-number"}) is None
    assert tx_timestamp({}) is None


@pytest.mark.parametrize("value", [str(10**17), str(-(10**17)), "99999999999999999999"])
def test_tx_timestamp_out_of_range_is_invalid(value):
    assert tx_timestamp({"timeStamp": value}) is None


def test_out_of_range_timestamp_is_excluded_from_stats():
    huge = make_tx("0xhuge")
    huge["timeStamp"] = str(10**17)
    records = [_on_day("0x1", 0), huge]
    assert calculate_activity_heatmap(records) == {"2024-01-01": 1}
    stats = calculate_advanced_stats(records)
    assert stats.unique_days == 1
    assert stats.active_age == 0


# ── ETH stats ──────────────────────────────────────────────────────────────
def test_eth_stats_received_sent_and_gas():
    txlist = [
        make_tx("0x1", frm=OTHER, to=WALLET, value=2 * ETH, gasUsed="21000", gasPrice="1000000000"),
        make_tx("0x2", frm=WALLET.lower(), to=OTHER, value=ETH, gasUsed="21000", gasPrice="1000000000"),
    ]
    internal = [
        make_tx("0x3", frm=OTHER, to=WALLET.upper().replace("0X", "0x"), value=ETH // 2),
        make_tx("0x4", frm=WALLET, to=OTHER, value=ETH // 10),
    ]

    stats = calculate_eth_stats(txlist, internal, WALLET)

    assert stats.received == 2 * ETH + ETH // 2
    assert stats.sent == ETH + ETH // 10
    # Gas only for the normal tx the wallet sent
    assert stats.gas_paid == 21000 * 1000000000
    assert stats.net == stats.received - stats.sent - stats.gas_paid


def test_eth_stats_self_transfer_counts_both_directions():
    txlist = [make_tx("0x1", frm=WALLET, to=WALLET, value=ETH, gasUsed="10", gasPrice="3")]
    stats = calculate_eth_stats(txlist, [], WALLET)
    assert stats.received == ETH
    assert stats.sent == ETH
    assert stats.gas_paid == 30
    assert stats.net == -30


def test_eth_stats_exact_on_large_values():
    big = 10**30 + 1
    txlist = [make_tx("0x1", value=big), make_tx("0x2", value=big)]
    stats = calculate_eth_stats(txlist, [], WALLET)
    assert stats.received == 2 * big
    assert stats.net == 2 * big


def test_eth_stats_missing_value_and_contract_creation():
    tx = make_tx("0x1", frm=WALLET, to="")
    del tx["value"]
    stats = calculate_eth_stats([tx], [], WALLET)
    assert stats.received == 0
    assert stats.sent == 0


def test_eth_stats_empty():
    stats = calculate_eth_stats([], [], WALLET)
    assert (stats.received, stats.sent, stats.gas_paid, stats.net) == (0, 0, 0, 0)


@pytest.mark.parametrize("wei,expected", [
    (0, "0.000000 ETH"),
    (ETH, "1.000000 ETH"),
    (1234567890123456789, "1.234568 ETH"),
    (-3 * ETH // 2, "-1.500000 ETH"),
])
def test_fmt_eth(wei, expected):
    assert fmt_eth(wei) == expected


# ── Heatmap ────────────────────────────────────────────────────────────────
def test_heatmap_splits_records_across_utc_midnight():
    late = make_tx("0x1", ts=JAN_1_2024 + 12 * 3600)         # 2024-01-01 12:00
    next_day = make_tx("0x2", ts=JAN_1_2024 + 35 * 3600)     # 2024-01-02 11:00, 23h later
    heatmap = calculate_activity_heatmap([late], [next_day])
    assert heatmap == {"2024-01-01": 1, "2024-01-02": 1}


def test_heatmap_counts_all_categories_and_skips_invalid_timestamps():
    bad = make_tx("0xbad")
    bad["timeStamp"] = "garbage"
    heatmap = calculate_activity_heatmap(
        [_on_day("0x1", 0)], [_on_day("0x2", 0, hour=1)], [_on_day("0x3", 2), bad], [],
    )
    assert heatmap == {"2024-01-01": 2, "2024-01-03": 1}
    assert list(heatmap) == sorted(heatmap)


# ── Advanced stats ─────────────────────────────────────────────────────────
def test_longest_streak_with_gap():
    records = [_on_day("0x1", 0), _on_day("0x2", 1), _on_day("0x3", 2), _on_day("0x4", 9)]
    stats = calculate_advanced_stats(records)
    assert stats.unique_days == 4
    assert stats.longest_streak == 3


def test_longest_streak_on_date_strings():
    assert longest_streak(["2024-01-01", "2024-01-02", "2024-01-03", "2024-01-10"]) == 3
    assert longest_streak(["2024-01-31", "2024-02-01"]) == 2
    assert longest_streak(["2024-02-28", "2024-02-29", "2024-03-01"]) == 3
    assert longest_streak(["2023-12-31", "2024-01-01", "2024-01-05", "2024-01-06", "2024-01-07"]) == 3
    assert longest_streak(["2024-05-05"]) == 1
    assert longest_streak([]) == 0


def test_advanced_stats_empty_input():
    stats = calculate_advanced_stats([], [], [], [])
    assert stats == AdvancedStats()
    assert stats.since is None
    assert stats.active_age == 0
    assert stats.unique_days == 0
    assert stats.longest_streak == 0
    assert format_since(stats.since) == "N/A"


def test_advanced_stats_ignore_invalid_timestamps():
    bad = make_tx("0xbad")
    bad["timeStamp"] = ""
    stats = calculate_advanced_stats([bad])
    assert stats == AdvancedStats()


def test_advanced_stats_span_and_since():
    first = make_tx("0x1", ts=JAN_1_2024)
    last = make_tx("0x2", ts=JAN_1_2024 + 2 * DAY + 23 * 3600)
    stats = calculate_advanced_stats([last], [first])

    assert stats.since == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert stats.last_activity == datetime(2024, 1, 3, 23, tzinfo=timezone.utc)
    assert stats.active_age == 2
    assert stats.unique_days == 2
    assert stats.longest_streak == 1


def test_advanced_stats_single_record():
    stats = calculate_advanced_stats([_on_day("0x1", 0)])
    assert stats.active_age == 0
    assert stats.unique_days == 1
    assert stats.longest_streak == 1


def test_format_since():
    assert format_since(datetime(2024, 1, 1, tzinfo=timezone.utc)) == "Mon, Jan 1, 2024"
    assert format_since(None) == "N/A"


@pytest.mark.parametrize("days,expected", [
    (0, "Less than 1 day"),
    (0.5, "Less than 1 day"),
    (1, "1 Day"),
    (2, "2 Days"),
    (364, "364 Days"),
    (365, "1 Year 0 Days"),
    (366, "1 Year 1 Day"),
    (400, "1 Year 35 Days"),
    (731, "2 Years 1 Day"),
])
def test_format_active_age(days, expected):
    assert format_active_age(days) == expected


# ── Tokens & NFTs ──────────────────────────────────────────────────────────
USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"


def _token_tx(tx_hash, frm, to, value, contract=USDC):
    return make_tx(
        tx_hash, frm=frm, to=to, value=value,
        contractAddress=contract, tokenSymbol="USDC", tokenName="USD Coin", tokenDecimal="6",
    )


def test_token_stats_group_by_contract_and_direction():
    tokentx = [
        _token_tx("0x1", OTHER, WALLET, 5_000_000),
        _token_tx("0x2", WALLET.lower(), OTHER, 2_000_000, contract=USDC.lower()),
        _token_tx("0x3", OTHER, WALLET, 1_000_000, contract=USDC.upper().replace("0X", "0x")),
    ]
    token_stats, nft_stats = calculate_token_stats(tokentx, [], WALLET)

    assert list(token_stats) == [USDC.lower()]
    usdc = token_stats[USDC.lower()]
    assert usdc["symbol"] == "USDC"
    assert usdc["name"] == "USD Coin"
    assert usdc["decimals"] == 6
    assert usdc["received"] == 6_000_000
    assert usdc["sent"] == 2_000_000
    assert usdc["transfers"] == 3
    assert nft_stats == {}


def test_token_stats_self_transfer_counts_both():
    token_stats, _ = calculate_token_stats([_token_tx("0x1", WALLET, WALLET, 10)], [], WALLET)
    assert token_stats[USDC.lower()]["received"] == 10
    assert token_stats[USDC.lower()]["sent"] == 10


def test_nft_stats_count_per_collection():
    nft = "0xAbCdEf0000000000000000000000000000000001"
    tokennfttx = [
        make_tx("0x1", contractAddress=nft, tokenSymbol="PUNK", tokenName="Punks", tokenID="1"),
        make_tx("0x2", contractAddress=nft.lower(), tokenSymbol="PUNK", tokenName="Punks", tokenID="2"),
    ]
    _, nft_stats = calculate_token_stats([], tokennfttx, WALLET)
    assert nft_stats == {nft.lower(): {"symbol": "PUNK", "name": "Punks", "count": 2}}
