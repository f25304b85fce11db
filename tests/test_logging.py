import logging

import pytest

from levelscope.core.config import Settings
from levelscope.core.logging import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


def test_setup_logging_reports_app_identity(capsys):
    settings = Settings(app_version="9.9.9", environment="test", log_format="%(levelname)s %(message)s")

    setup_logging(settings, level="debug")

    assert logging.getLogger().level == logging.DEBUG
    assert "DEBUG levelscope v9.9.9 (test): logging at DEBUG" in capsys.readouterr().err


def test_setup_logging_uses_settings_level(capsys):
    setup_logging(Settings(log_level="WARNING"))

    assert logging.getLogger().level == logging.WARNING
    assert capsys.readouterr().err == ""
