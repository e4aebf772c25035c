# chat_common/logging_util.py

"""
Logger setup shared by the server and the client.

Each named logger gets one stream handler the first time it is requested;
later calls return it unchanged.
"""

import logging

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def setup_logger(name: str = "chat", level: int | str = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(level)
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
