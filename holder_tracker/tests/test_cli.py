import json
from unittest.mock import patch

from holder_tracker.apps import tracker_cli
from holder_tracker.core.config import Settings


def test_apply_overrides():
    args = tracker_cli.build_parser().parse_args([
        '--no-whales', '--whale-threshold', '2.5', '--min-balance', '0',
        '--max-holders', '25', '--data-dir', 'out', '--log-level', 'debug',
    ])
    s = tracker_cli.apply_overrides(Settings(), args)
    assert s.filters.exclude_whales is False
    assert s.filters.exclude_services is True
    assert s.filters.whale_threshold_percent == 2.5
    assert s.filters.min_balance_to_include == 0
    assert s.reports.max_holders_to_save == 25
    assert s.reports.data_dir == 'out'
    assert s.logging.level == 'debug'


def test_apply_overrides_without_flags_is_identity():
    args = tracker_cli.build_parser().parse_args([])
    assert tracker_cli.apply_overrides(Settings(), args) == Settings()


def test_echo_prints_resolved_settings(capsys):
    rc = tracker_cli.main(['--echo', '--no-services', '--mint', 'So11111111111111111111111111111111111111112'])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out['filters']['exclude_services'] is False
    assert out['token']['mint'] == 'So11111111111111111111111111111111111111112'


def test_invalid_mint_override_returns_2():
    assert tracker_cli.main(['--echo', '--mint', 'bogus!']) == 2


def test_negative_threshold_returns_2():
    assert tracker_cli.main(['--echo', '--whale-threshold', '-1']) == 2


def test_missing_config_returns_2(tmp_path):
    assert tracker_cli.main(['--config', str(tmp_path / 'nope.yaml')]) == 2


@patch('holder_tracker.apps.tracker_cli.setup_logging')
@patch('holder_tracker.apps.tracker_cli.HolderTracker')
def test_main_runs_tracker(mock_tracker, mock_logging, tmp_path):
    calls = []

    async def fake_run():
        calls.append('run')
        return {}

    mock_tracker.return_value.run = fake_run
    rc = tracker_cli.main(['--data-dir', str(tmp_path), '--max-holders', '10'])
    assert rc == 0
    assert calls == ['run']
    settings = mock_tracker.call_args.args[0]
    assert settings.reports.max_holders_to_save == 10
    mock_logging.assert_called_once_with(settings.logging.level, settings.logging.file)


def test_infinite_whale_threshold_returns_2():
    assert tracker_cli.main(['--echo', '--whale-threshold', 'inf']) == 2
