import logging
import os

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def get_logger(name):
    """
    Return a module logger with a stderr handler attached once.
    Set P2P_DEBUG in the environment to see debug output.
    """
    logger = logging.getLogger(name)
    level = logging.DEBUG if os.getenv("P2P_DEBUG") else logging.INFO
    logger.setLevel(level)
    if not logger.hasHandlers():
        ch = logging.StreamHandler()
        ch.setLevel(logging.DEBUG)
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(ch)
    return logger
