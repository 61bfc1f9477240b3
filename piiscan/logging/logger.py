import logging
import sys
from piiscan.config import Config
from piiscan.errors import ConfigError

def setup_logging(level=None, log_file=None, stream=None):
    level = level or Config.LOG_LEVEL
    if isinstance(level, str) and not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f"Invalid log level '{level}'", target="LOG_LEVEL", operation="configure logging")

    handlers = [logging.StreamHandler(stream or sys.stdout)]
    log_file = log_file or Config.LOG_FILE
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )
