import logging
import os
from logging.handlers import RotatingFileHandler
import sys

LOG_DIR = os.getenv("LOG_DIR", "logs")

# Create logs directory if it doesn't exist
os.makedirs(LOG_DIR, exist_ok=True)

def setup_logger(name='clawd_fantasy', log_level=logging.INFO):
    """
    Set up a named logger writing to a rotating file and to stdout

    Args:
        name: Logger name, also used as the log file name
        log_level: Logging level (default: INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # Re-running setup must not stack duplicate handlers
    if logger.handlers:
        logger.handlers.clear()

    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # 5MB per file, 5 backups
    file_handler = RotatingFileHandler(
        os.path.join(LOG_DIR, f'{name}.log'),
        maxBytes=5*1024*1024,
        backupCount=5
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(file_formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(console_formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


def mask_address(address):
    """Shorten an address for logs, e.g. 0x1234...abcd"""
    if not address:
        return ''
    return f"{address[:6]}...{address[-4:]}" if len(address) > 10 else address

# Default application logger
app_logger = setup_logger()
