import logging

FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a console handler to the package logger once."""
    logger = logging.getLogger("weatherdash")
    logger.setLevel(level.upper())

    if not logger.handlers:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(FORMAT))
        logger.addHandler(console)

    return logger
