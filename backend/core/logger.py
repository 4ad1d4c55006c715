# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Logging for the service and the bin/ scripts.

Handlers and levels come from etc/logging.conf; the only value filled in here
is the path of the rotating file handler (log/app.log).

    from core.logger import get_logger
    log = get_logger("assets")      # → "asset_manager.assets"
"""

import configparser
import logging
import logging.config
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_LOG_FILE = _PROJECT_ROOT / "log" / "app.log"
_LOGGING_CONF = _PROJECT_ROOT / "etc" / "logging.conf"

_LOG_FILE.parent.mkdir(exist_ok=True)

# Raw parser: the format strings use %(asctime)s style fields.
_parser = configparser.RawConfigParser()
_parser.read_string(
    _LOGGING_CONF.read_text(encoding="utf-8").replace("%(log_file)s", _LOG_FILE.as_posix())
)
logging.config.fileConfig(_parser, disable_existing_loggers=False)

logger = logging.getLogger("asset_manager")


def get_logger(name: str) -> logging.Logger:
    return logger.getChild(name)
