import logging

LOG_FMT = "%(asctime)s │ %(levelname)-7s │ %(message)s"

def setup_logger(name: str = "QuantFlow", level=logging.INFO) -> logging.Logger:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FMT, datefmt="%H:%M:%S")
    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger

log = logging.getLogger("QuantFlow")
