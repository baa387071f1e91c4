"""
Tests for structured logging and configuration
"""

import json
import logging
import sys

from shiwallet.config import ShiwalletConfig, get_config, reload_config
from shiwallet.logging_config import JSONFormatter, setup_logging, get_logger, log_action


class TestJSONFormatter:
    """Test JSON log formatting"""

    def _record(self, **attributes):
        record = logging.LogRecord("shiwallet.ledger", logging.INFO, __file__, 1, "Deposit recorded", (), None)
        for key, value in attributes.items():
            setattr(record, key, value)
        return record

    def test_structured_fields(self):
        record = self._record(action="deposit", resource="wallet:abc", extra={"amount": "10.00 T"})

        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "shiwallet.ledger"
        assert entry["message"] == "Deposit recorded"
        assert entry["action"] == "deposit"
        assert entry["resource"] == "wallet:abc"
        assert entry["extra"] == {"amount": "10.00 T"}
        assert "timestamp" in entry

    def test_missing_fields_are_dropped(self):
        entry = json.loads(JSONFormatter().format(self._record()))
        assert "action" not in entry
        assert "extra" not in entry

    def test_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = self._record(exc_info=sys.exc_info())

        entry = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in entry["exception"]


class TestSetupLogging:
    """Test logger configuration"""

    def test_json_handler(self, capsys):
        logger = setup_logging("DEBUG")

        log_action(logger, "info", "Wallet created", action="create_wallet", resource="wallet:abc")

        line = capsys.readouterr().err.strip()
        entry = json.loads(line)
        assert entry["action"] == "create_wallet"
        assert logger.level == logging.DEBUG
        assert logger.propagate is False

    def test_no_duplicate_handlers(self):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_text_format_to_file(self, tmp_path):
        log_file = tmp_path / "shiwallet.log"
        logger = setup_logging("INFO", log_format="text", log_file=str(log_file))

        logger.info("Plain message")
        for handler in logger.handlers:
            handler.flush()

        assert "INFO shiwallet: Plain message" in log_file.read_text()

    def test_log_action_respects_level(self, capsys):
        logger = setup_logging("WARNING")
        log_action(logger, "info", "Hidden", action="deposit")
        assert capsys.readouterr().err == ""

    def test_child_loggers(self):
        parent = get_logger("shiwallet")
        assert get_logger("shiwallet.profit").parent is parent


class TestConfig:
    """Test environment-based configuration"""

    def test_defaults(self):
        config = ShiwalletConfig()
        assert config.default_annual_rate == "0.24"
        assert config.profit_trigger_day == 15
        assert config.timezone == "Asia/Tehran"
        assert config.storage_key == "walletData"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SHIWALLET_STORAGE_BACKEND", "sqlite")
        monkeypatch.setenv("SHIWALLET_PROFIT_TRIGGER_DAY", "1")

        config = reload_config()

        assert config is get_config()
        assert config.storage_backend == "sqlite"
        assert config.profit_trigger_day == 1

        monkeypatch.undo()
        reload_config()

    def test_settings_config(self):
        assert ShiwalletConfig.model_config["env_prefix"] == "SHIWALLET_"
        assert ShiwalletConfig.model_config["env_file"] == ".env"
