"""
Tests for logging setup — levels, formats, file output, third-party noise.
"""

import logging
from pathlib import Path

import pytest

from appdir_conda.core.observability.logging_config import _parse_level, resolve_level, setup_logging

pytestmark = pytest.mark.usefixtures("restore_logging")


class TestParseLevel:
    def test_names(self):
        assert _parse_level("debug") == logging.DEBUG
        assert _parse_level("WARNING") == logging.WARNING

    def test_unknown_defaults_to_info(self):
        assert _parse_level("chatty") == logging.INFO

    def test_empty_defaults_to_info(self):
        assert _parse_level(None) == logging.INFO
        assert _parse_level("") == logging.INFO


class TestResolveLevel:
    def test_default_info(self):
        assert resolve_level(False, {}) == "INFO"

    def test_debug_flag(self):
        assert resolve_level(True, {"APPDIR_CONDA_LOG_LEVEL": "ERROR"}) == "DEBUG"

    def test_debug_env_var(self):
        assert resolve_level(False, {"DEBUG": "1"}) == "DEBUG"

    def test_empty_debug_env_var_ignored(self):
        assert resolve_level(False, {"DEBUG": ""}) == "INFO"

    def test_log_level_env_var(self):
        assert resolve_level(False, {"APPDIR_CONDA_LOG_LEVEL": "WARNING"}) == "WARNING"


class TestSetupLogging:
    def test_single_console_handler(self):
        setup_logging()
        setup_logging()
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.INFO

    def test_plugin_style_format(self):
        setup_logging()
        formatter = logging.getLogger().handlers[0].formatter
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "Installing numpy", None, None)
        assert formatter.format(record) == "-*- Installing numpy"

    def test_debug_format_has_location(self):
        setup_logging(level="DEBUG")
        formatter = logging.getLogger().handlers[0].formatter
        assert "%(lineno)d" in formatter._fmt

    def test_timestamps(self):
        setup_logging(timestamps=True)
        formatter = logging.getLogger().handlers[0].formatter
        assert "%(asctime)s" in formatter._fmt

    def test_file_handler(self, tmp_path: Path):
        log_file = tmp_path / "bundle.log"
        setup_logging(level="WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert len(root.handlers) == 2
        assert root.level == logging.DEBUG

        logging.getLogger("appdir_conda.test").debug("only in the file")
        for handler in root.handlers:
            handler.flush()
        assert "only in the file" in log_file.read_text()

    def test_third_party_quieted(self):
        setup_logging(level="INFO")
        assert logging.getLogger("filelock").level == logging.WARNING

    def test_third_party_loud_at_debug(self):
        logging.getLogger("filelock").setLevel(logging.NOTSET)
        setup_logging(level="DEBUG")
        assert logging.getLogger("filelock").level == logging.NOTSET
