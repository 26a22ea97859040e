import logging

ROOT_LOGGER_NAME = "ecs_reconciler"

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(name)


def configure_logging(level: int | str = logging.INFO) -> None:
    """Attach a stream handler to the package logger.

    Safe to call more than once; only the level changes on later calls.
    """
    logger = get_logger()
    logger.setLevel(level)
    if not any(getattr(h, "_ecs_reconciler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        setattr(handler, "_ecs_reconciler", True)
        logger.addHandler(handler)
