import sys
from pathlib import Path

from loguru import logger

DEFAULT_LOG_FILE = ".code_agent/workflow.log"

# Lines logged outside a run carry "-" in place of the run id.
_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> <level>{level:<8}</level> "
    "<magenta>[{extra[run_id]}]</magenta> <cyan>{name}</cyan> - <level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | run={extra[run_id]} | {name}:{function}:{line} - {message}"


def setup_logging(level: str = "INFO", *, log_file: str | None = DEFAULT_LOG_FILE, console: bool = True) -> list[str]:
    """Route loguru to stderr and a rotating file, tagging every line with its run.

    Workflow code logs inside ``logger.contextualize(run_id=...)``; the id
    lands in ``extra`` and is printed by both sinks. Returns a description of
    each sink for the CLI banner.
    """
    logger.remove()
    logger.configure(extra={"run_id": "-"})

    descriptions: list[str] = []
    if console:
        logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT)
        descriptions.append(f"console (stderr, {level})")
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_file, level=level, format=_FILE_FORMAT, rotation="10 MB", retention=5, enqueue=True)
        descriptions.append(f"file ({log_file}, {level})")
    return descriptions
