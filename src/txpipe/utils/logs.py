import logging
from typing import Union


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Union[int, str] = logging.WARNING) -> logging.Logger:
    """
    Attach a stream handler to the ``txpipe`` logger.

    The library itself only installs a NullHandler; applications call this
    (or configure logging themselves) to see pipeline output. Calling it
    again updates the level without adding a second handler.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    logger = logging.getLogger("txpipe")
    logger.setLevel(level)
    if not any(getattr(handler, "_txpipe", False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._txpipe = True
        logger.addHandler(handler)
    return logger
