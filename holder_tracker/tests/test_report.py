import json
from datetime import datetime, timezone

from holder_tracker.classify import ClassificationPolicy, classify
from holder_tracker.report import (
    ReportWriter,
    build_excluded_report,
    build_filtered_report,
    compute_holder_statistics,
    format_balance,
    rank_holders,
)
from holder_tracker.report.writer import file_timestamp

NOW = datetime(2024, 5, 1, 12, 30, 15, 123456, tzinfo=timezone.utc)


def _policy(**kw):
    base = dict(whale_threshold_percent=20.0, min_balance_to_include=1000)
    base.update(kw)
    return ClassificationPolicy(**base)


def test_format_balance():
    assert format_balance(1_500_000, 6) == "1.500000"
    assert format_balance(1_500_000, 6, 2) == "1.50"
    assert format_balance(0, 6) == "0.000000"
    # exact for amounts beyond float precision
    assert format_balance(2 ** 64 + 1, 0, 0) == str(2 ** 64 + 1)


def test_stats_on_empty_map():
    stats = compute_holder_statistics({})
    assert stats['total_holders'] == 0
    assert stats['average_balance'] == '0'
    assert stats['largest_holder'] == '0'
    assert stats['smallest_holder'] == '0'


def test_stats_values():
    stats = compute_holder_statistics({'a': 3_000_000, 'b': 1_000_000, 'c': 2_000_001}, decimals=6)
    assert stats['total_holders'] == 3
    assert stats['total_supply_held'] == '6000001'
    assert stats['total_supply_held_formatted'] == '6.00'
    assert stats['average_balance'] == '2000000'
    assert stats['largest_holder_formatted'] == '3.00'
    assert stats['smallest_holder'] == '1000000'


def test_rank_holders_breaks_ties_by_address():
    ranked = rank_holders({'b': 5, 'a': 5, 'c': 9, 'd': 1})
    assert ranked == [('c', 9), ('a', 5), ('b', 5), ('d', 1)]
    assert rank_holders({'b': 5, 'a': 5, 'c': 9}, limit=2) == [('c', 9), ('a', 5)]


def test_filtered_report_document():
    balances = {'A': 500, 'B': 10_000_000, 'C': 2_000_000, 'D': 100, 'E': 3_000}
    policy = _policy().with_service_addresses(['A'])
    result = classify(balances, policy)
    doc = build_filtered_report(result, token_mint='MINT', timestamp=NOW.isoformat(), policy=policy,
                                decimals=6, max_holders=1)
    assert doc['token_mint'] == 'MINT'
    assert doc['total_holders'] == 5
    assert doc['filtered_holders'] == 2
    assert doc['saved_holders'] == 1
    assert doc['total_supply'] == str(sum(balances.values()))
    assert doc['holders'] == [{'address': 'C', 'balance': '2000000', 'balance_formatted': '2.000000'}]
    assert doc['filter_stats']['whales_filtered'] == 1
    assert doc['filter_settings']['whale_threshold_percent'] == 20.0
    json.dumps(doc)


def test_excluded_report_caps_dust_preview():
    balances = {f'd{i}': i + 1 for i in range(10)}
    balances['big'] = 10 ** 12
    result = classify(balances, _policy(exclude_whales=False))
    doc = build_excluded_report(result, timestamp=NOW.isoformat(), dust_preview_limit=3)
    assert doc['dust_total'] == 10
    assert [d['address'] for d in doc['dust']] == ['d0', 'd1', 'd2']
    assert doc['services'] == [] and doc['whales'] == []


def test_excluded_report_whale_rows():
    result = classify({'w': 9_000_000, 'x': 1_000_000}, _policy(whale_threshold_percent=50.0))
    doc = build_excluded_report(result, timestamp=NOW.isoformat())
    assert doc['whales'] == [
        {'address': 'w', 'balance': '9000000', 'percentage': '90.00', 'balance_formatted': '9.000000'}
    ]


def test_file_timestamp_has_no_colons_or_dots():
    stamp = file_timestamp(NOW)
    assert ':' not in stamp and '.' not in stamp
    assert stamp.startswith('2024-05-01T12-30-15-123456')


def test_writer_creates_all_files(tmp_path):
    balances = {'A': 500, 'B': 10_000_000, 'C': 2_000_000, 'D': 100}
    policy = _policy().with_service_addresses(['A'])
    result = classify(balances, policy)
    writer = ReportWriter(str(tmp_path / 'nested' / 'data'))
    written = writer.save(result, token_mint='MINT', policy=policy, now=NOW)

    assert set(written) == {'filtered', 'latest', 'excluded'}
    for path in written.values():
        assert path.exists()
    assert written['filtered'].name == f"holders_filtered_{file_timestamp(NOW)}.json"
    assert written['latest'].name == 'latest_filtered.json'

    filtered = json.loads(written['filtered'].read_text())
    latest = json.loads(written['latest'].read_text())
    assert filtered == latest
    assert filtered['holders'][0]['address'] == 'C'

    excluded = json.loads(written['excluded'].read_text())
    assert [s['address'] for s in excluded['services']] == ['A']
    assert excluded['dust_total'] == 1


def test_writer_skips_excluded_when_nothing_excluded(tmp_path):
    result = classify({'a': 5_000, 'b': 5_000}, _policy(exclude_whales=False))
    written = ReportWriter(str(tmp_path)).save(result, token_mint='MINT', policy=_policy(), now=NOW)
    assert 'excluded' not in written
    assert not list(tmp_path.glob('excluded_*.json'))


def test_writer_respects_include_excluded_flag(tmp_path):
    result = classify({'a': 1, 'b': 5_000}, _policy(exclude_whales=False))
    written = ReportWriter(str(tmp_path)).save(result, token_mint='MINT', policy=_policy(),
                                               include_excluded=False, now=NOW)
    assert 'excluded' not in written
