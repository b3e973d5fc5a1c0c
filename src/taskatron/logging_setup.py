import logging
import sys
from typing import Union

_HANDLER_NAME = "taskatron-console"


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Attach a console handler to the ``taskatron`` logger.
    Safe to call more than once; the handler is only added the first time.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger("taskatron")
    logger.setLevel(level)
    if any(h.get_name() == _HANDLER_NAME for h in logger.handlers):
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
