import json
import logging
from types import SimpleNamespace

import pytest

from quicknews import cli
from quicknews.config import AppConfig, LoggingConfig, ServerConfig
from quicknews.errors import NotificationDeliveryError


@pytest.fixture
def restore_root_handlers():
    original_handlers = list(logging.getLogger().handlers)
    for handler in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(handler)
    yield
    for handler in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(handler)
        handler.close()
    for handler in original_handlers:
        logging.getLogger().addHandler(handler)


@pytest.fixture
def app_config(monkeypatch):
    config = AppConfig(
        feeds_file="feeds.xml",
        server=ServerConfig(host="127.0.0.1", port=3000),
        logging=LoggingConfig(level="INFO", file="config.log"),
    )
    monkeypatch.setattr(cli, "parse_app_config", lambda path: config)
    monkeypatch.setattr(cli, "parse_env_config", lambda path: {})
    return config


def test_configure_logging_defaults_to_console_only(restore_root_handlers):
    cli.configure_logging("INFO")

    handlers = logging.getLogger().handlers
    assert any(isinstance(handler, logging.StreamHandler) for handler in handlers)
    assert not any(isinstance(handler, logging.FileHandler) for handler in handlers)


def test_configure_logging_with_log_file_creates_file_handler(
    restore_root_handlers, tmp_path
):
    log_path = tmp_path / "nested" / "custom.log"
    cli.configure_logging("INFO", str(log_path))

    assert log_path.exists()
    assert any(
        isinstance(handler, logging.FileHandler) for handler in logging.getLogger().handlers
    )


def test_configure_logging_rejects_unknown_level():
    with pytest.raises(ValueError):
        cli.configure_logging("CHATTY")


def test_main_serves_by_default(monkeypatch, app_config):
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)
    fake_service = SimpleNamespace()
    monkeypatch.setattr(cli, "build_service", lambda config: fake_service)
    served = {}
    monkeypatch.setattr(
        cli,
        "serve",
        lambda service, host, port: served.update(service=service, host=host, port=port),
    )

    assert cli.main(["--config", "configs/test.xml"]) == 0
    assert served == {"service": fake_service, "host": "127.0.0.1", "port": 3000}


def test_main_port_flag_overrides_config(monkeypatch, app_config):
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)
    monkeypatch.setattr(cli, "build_service", lambda config: SimpleNamespace())
    served = {}
    monkeypatch.setattr(
        cli, "serve", lambda service, host, port: served.update(port=port)
    )

    cli.main(["serve", "--port", "8123"])

    assert served["port"] == 8123


def test_main_cli_overrides_logging(monkeypatch, app_config):
    captured = {}

    def fake_configure(level, log_file=None):
        captured["level"] = level
        captured["file"] = log_file

    monkeypatch.setattr(cli, "configure_logging", fake_configure)
    monkeypatch.setattr(cli, "build_service", lambda config: SimpleNamespace())
    monkeypatch.setattr(cli, "serve", lambda service, host, port: None)

    cli.main(["--log-level", "DEBUG", "--log-file", "cli.log"])

    assert captured == {"level": "DEBUG", "file": "cli.log"}


def test_main_stats_prints_ledger(monkeypatch, app_config, capsys):
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)
    monkeypatch.setattr(
        cli,
        "build_service",
        lambda config: SimpleNamespace(stats=lambda: {"2024-05-02": {"abc": 2}}),
    )

    assert cli.main(["stats"]) == 0
    assert json.loads(capsys.readouterr().out) == {"2024-05-02": {"abc": 2}}


def test_main_send_summary_failure_returns_error(monkeypatch, app_config):
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)

    def fail():
        raise NotificationDeliveryError("no api key")

    monkeypatch.setattr(
        cli, "build_service", lambda config: SimpleNamespace(send_summary=fail)
    )

    assert cli.main(["send-summary"]) == 1


def test_main_missing_config_returns_error(monkeypatch):
    def missing(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    monkeypatch.setattr(cli, "parse_app_config", missing)

    assert cli.main(["--config", "nope.xml", "stats"]) == 1
