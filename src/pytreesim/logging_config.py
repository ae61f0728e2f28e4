"""
Logging configuration for pytreesim.

All modules obtain their logger through get_logger() so that a single call
to setup_logging() controls the whole package. The log_* helpers keep the
wording of recurring simulation events consistent across modules.
"""
import logging
import sys
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER_NAME = "pytreesim"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    fmt: str = DEFAULT_FORMAT
) -> logging.Logger:
    """Configure the package logger.

    Args:
        level: Logging level (name or number)
        log_file: Optional file to write log records to in addition to stderr
        fmt: Log record format string

    Returns:
        The configured package logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    logger.setLevel(level)

    # Replace handlers so repeated calls do not duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger inside the package namespace.

    Args:
        name: Usually __name__ of the calling module

    Returns:
        Logger instance
    """
    if name != PACKAGE_LOGGER_NAME and not name.startswith(PACKAGE_LOGGER_NAME + "."):
        name = f"{PACKAGE_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def log_death(logger: logging.Logger, tree_id: str, cause: str, age: float,
              hazard: Optional[float] = None) -> None:
    """Log a tree death event."""
    message = f"Tree {tree_id} died: cause={cause}, age={age:.2f}y"
    if hazard is not None:
        message += f", hazard={hazard:.4f}/y"
    logger.info(message)


def log_phenology_transition(logger: logging.Logger, tree_id: str, flag: str,
                             active: bool, day_of_year: float, year: int) -> None:
    """Log a phenology flag switching on or off."""
    state = "began" if active else "ended"
    logger.info(
        f"Tree {tree_id} {flag} {state} on day {day_of_year:.1f} of year {year}"
    )


def log_simulation_summary(logger: logging.Logger, days: float, substeps: int,
                           height: float, dbh: float, health: float,
                           alive: bool) -> None:
    """Log a summary line for a completed simulation run."""
    status = "alive" if alive else "dead"
    logger.info(
        f"Simulated {days:.1f} days in {substeps} substeps: "
        f"height={height:.3f}m, dbh={dbh:.4f}m, health={health:.1f}, tree {status}"
    )
