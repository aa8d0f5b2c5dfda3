import logging

LOGGER_NAME = "sessiongate"


def configure_logging(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())

    # create_app may run more than once per process (tests)
    if getattr(logger, "_sessiongate_configured", False):
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)

    setattr(logger, "_sessiongate_configured", True)
    return logger
