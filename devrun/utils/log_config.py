import sys

from loguru import logger


def configure_logging(verbose: bool = False) -> None:
    """Route loguru output to stderr at a level suited to CLI usage.

    Args:
        verbose: Emit DEBUG records (every external command) when True
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "WARNING",
        format="<dim>{time:HH:mm:ss}</dim> <level>{level: <8}</level> {message}",
    )
