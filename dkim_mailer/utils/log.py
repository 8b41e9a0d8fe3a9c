"""
Logging setup for dkim-mailer
"""
import logging
import os

LOGGER_NAME = 'DkimMailer'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Below DEBUG, for the activation-gate chatter
TRACE = 5
logging.addLevelName(TRACE, 'TRACE')


def get_logger(name=None):
    """Return the application logger or one of its children"""
    if name:
        return logging.getLogger(f'{LOGGER_NAME}.{name}')
    return logging.getLogger(LOGGER_NAME)


def setup_logging(level=logging.INFO, log_dir=None):
    """Attach a stream handler and, if log_dir is given, a file handler"""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(os.path.join(log_dir, 'dkim_mailer.log'))
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
