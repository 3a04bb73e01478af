import pytest

from pulseboard.logging.config.logging_config import (
    _global_disabled_loggers,
    _global_log_level,
    _global_logging_directory,
)
from pulseboard.logging.models import LogLevel


@pytest.fixture(autouse=True)
def reset_logging_config():
    level = _global_log_level.set(LogLevel.INFO)
    directory = _global_logging_directory.set(None)
    disabled = _global_disabled_loggers.set([])

    yield

    _global_log_level.reset(level)
    _global_logging_directory.reset(directory)
    _global_disabled_loggers.reset(disabled)
