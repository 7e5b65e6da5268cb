import logging
from logging.handlers import RotatingFileHandler

from ballotbox.core.settings import get_settings

_settings = get_settings()

# Domain events: ballot transitions, accepted and refused votes
ballot_logger = logging.getLogger("ballotbox")
ballot_logger.setLevel(_settings.log_level)

# Prevent duplicate handlers when the module is reloaded
if not ballot_logger.handlers:
    # 5 MB per file, 3 backups; the file is opened on the first record
    file_handler = RotatingFileHandler(
        _settings.log_file, maxBytes=5 * 1024 * 1024, backupCount=3, delay=True
    )
    file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    ballot_logger.addHandler(file_handler)
