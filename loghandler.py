import os
import glob
import logging
from datetime import datetime

LOGGER_NAME = "pota_relay"
CONTACT_LOGGER_NAME = "contacts"

_logger = None
_contact_logger = None
contact_record_file = None

def setup_logging(log_dir="logs", clear_old=False, debug=False):
    global _logger, _contact_logger, contact_record_file

    os.makedirs(log_dir, exist_ok=True)

    if clear_old:
        clear_old_logs(log_dir)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    general_log_file = os.path.join(log_dir, f"pota-relay_{timestamp}.log")
    contact_record_file = os.path.join(log_dir, f"sent-contacts_{timestamp}.adi")

    # Main logger
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.FileHandler(general_log_file, encoding="utf-8"),
            logging.StreamHandler()
        ]
    )

    _logger = logging.getLogger(LOGGER_NAME)
    _logger.debug(f"Log file created: {general_log_file}")
    _logger.debug(f"Sent contacts will be written to: {contact_record_file}")
    _logger.debug(f"Logging level set to: {'DEBUG' if debug else 'INFO'}")

    # Contact record logger (no timestamps, file only)
    _contact_logger = logging.getLogger(CONTACT_LOGGER_NAME)
    _contact_logger.setLevel(logging.INFO)

    contact_handler = logging.FileHandler(contact_record_file, encoding="utf-8")
    contact_handler.setFormatter(logging.Formatter('%(message)s'))  # Raw payload only
    _contact_logger.addHandler(contact_handler)
    _contact_logger.propagate = False  # Don't send to root logger

    return _logger, contact_record_file

def get_logger():
    """Return the relay logger; usable before setup_logging() (e.g. under pytest)."""
    if _logger is None:
        return logging.getLogger(LOGGER_NAME)
    return _logger

def get_contact_logger():
    """Return the file-only logger that records every contact payload sent over UDP."""
    if _contact_logger is None:
        quiet = logging.getLogger(CONTACT_LOGGER_NAME)
        if not quiet.handlers:
            quiet.addHandler(logging.NullHandler())
        quiet.propagate = False
        return quiet
    return _contact_logger

def clear_old_logs(log_dir: str):
    if not os.path.exists(log_dir):
        return

    patterns = ["*.log", "*.adi"]
    deleted = 0

    for pattern in patterns:
        for file in glob.glob(os.path.join(log_dir, pattern)):
            try:
                os.remove(file)
                deleted += 1
            except OSError as e:
                print(f"Failed to delete {file}: {e}")

    print(f"Cleared {deleted} old log files.")
