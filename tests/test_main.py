"""
Tests for the console front end
"""
import pytest
from loguru import logger

import main
from conftest import config_data, failure, ok
from src.core.config import config
from src.Modules.Device_module.device_api_client import SyncErrorKind


@pytest.fixture
def cli(monkeypatch, tmp_path, fake_api):
    """Run main() against the fake API with logs in a temp dir"""
    monkeypatch.setattr(config, "LOGS_DIR", tmp_path)
    monkeypatch.setattr(main, "create_api_client", lambda base_url=None: fake_api)
    yield main.main
    logger.remove()


def test_status(cli, fake_api, capsys):
    fake_api.queue_fetch(ok(config_data(["07:30"], threshold=420)))

    assert cli(["status"]) == 0

    out = capsys.readouterr().out
    assert "Light threshold: 420" in out
    assert "Alarms:          1" in out
    assert fake_api.calls[-1] == ("CLOSE",)


def test_alarms_add(cli, fake_api, capsys):
    fake_api.queue_fetch(ok(config_data(["07:30"])))

    assert cli(["alarms", "add", "6:45"]) == 0

    assert fake_api.puts() == [{"alarms": ["06:45", "07:30"], "lightThreshold": 300}]
    assert capsys.readouterr().out.split() == ["06:45", "07:30"]


def test_alarms_add_invalid(cli, fake_api, capsys):
    fake_api.queue_fetch(ok(config_data(["07:30"])))

    assert cli(["alarms", "add", "99:99"]) == 1

    assert fake_api.puts() == []
    assert "Invalid time format" in capsys.readouterr().err


def test_threshold(cli, fake_api, capsys):
    fake_api.queue_fetch(ok(config_data(["07:30"], threshold=300)))

    assert cli(["threshold", "9000"]) == 0

    assert fake_api.puts() == [{"alarms": ["07:30"], "lightThreshold": 4095}]
    assert "Light threshold: 4095" in capsys.readouterr().out


def test_load_failure(cli, fake_api, capsys):
    fake_api.queue_fetch(failure(SyncErrorKind.NETWORK_UNAVAILABLE, error="refused"))

    assert cli(["status"]) == 1

    assert "network_unavailable" in capsys.readouterr().err


def test_history_empty(cli, fake_api, capsys):
    assert cli(["history", "--limit", "5"]) == 0

    assert ("LOGS", config.DEVICE_ID, 5) in fake_api.calls
    assert "Nenhum registro encontrado" in capsys.readouterr().out
