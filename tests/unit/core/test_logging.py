"""Unit tests for the structured logger and logging setup."""

import logging

import pytest

from oled_bridge.core.logging_config import coerce_level, configure_logging
from oled_bridge.core.logging_utils import get_module_logger


class TestStructuredLogger:
    def test_namespace_and_component(self):
        logger = get_module_logger("SerialLink")
        assert logger.name == "oled_bridge.SerialLink"
        assert logger.component == "SerialLink"

    def test_messages_are_prefixed(self, caplog):
        logger = get_module_logger("SerialLink")
        with caplog.at_level(logging.INFO, logger="oled_bridge"):
            logger.info("Opened %s", "/dev/ttyACM0")

        assert caplog.messages == ["[SerialLink] Opened /dev/ttyACM0"]

    def test_bad_format_args_are_kept(self, caplog):
        logger = get_module_logger("Core")
        with caplog.at_level(logging.INFO, logger="oled_bridge"):
            logger.info("count %d", "x")

        assert caplog.messages == ["[Core] count %d | args=x"]


class TestConfigureLogging:
    def test_coerce_level(self):
        assert coerce_level("debug") == logging.DEBUG
        assert coerce_level(logging.WARNING) == logging.WARNING
        with pytest.raises(ValueError):
            coerce_level("loud")

    def test_log_file_handler(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        log_file = tmp_path / "logs" / "bridge.log"
        try:
            configure_logging("warning", force=True, console=False, log_file=log_file)

            assert root.level == logging.WARNING
            assert log_file.parent.is_dir()
            assert logging.getLogger("aiohttp.access").level == logging.WARNING
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()
            for handler in saved_handlers:
                root.addHandler(handler)
            root.setLevel(saved_level)
