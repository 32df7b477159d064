import functools
import gzip
import inspect
import logging
import logging.handlers
import shutil
import sys
from pathlib import Path
from typing import Callable, ParamSpec, TypeVar

from .config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(module)s:%(funcName)s:%(lineno)d] %(message)s"
LOG_FILE_NAME = "nodedns.log"

logger = logging.getLogger("nodedns")
logger.setLevel(logging.DEBUG)
formatter = logging.Formatter(LOG_FORMAT)

logs_dir = Path(settings.logs_dir)
logs_dir.mkdir(parents=True, exist_ok=True)


def gzip_rotator(source: str, dest: str) -> None:
    """Compress the rolled-over log file to ``dest.gz``."""
    with open(source, "rb") as f_in, gzip.open(f"{dest}.gz", "wb") as f_out:
        shutil.copyfileobj(f_in, f_out)
    Path(source).unlink()


log_file_handler = logging.handlers.TimedRotatingFileHandler(
    logs_dir / LOG_FILE_NAME, when="midnight"
)
log_file_handler.setFormatter(formatter)
log_file_handler.rotator = gzip_rotator
logger.addHandler(log_file_handler)

log_stream_handler = logging.StreamHandler(sys.stdout)
log_stream_handler.setFormatter(formatter)
logger.addHandler(log_stream_handler)


P = ParamSpec("P")
R = TypeVar("R")


def log_exception(
    prefix: str = "",
    default_return: R | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator for background jobs: log any exception and return ``default_return``.

    Only meant for fire-and-forget work such as the scheduled alias
    reconciliation, where there is no caller to propagate to. Request paths
    must let errors propagate.
    """
    label = f"{prefix}: " if prefix else ""

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        def report(e: Exception) -> None:
            logger.error(
                f"{label}{type(e).__name__}: {e}",
                exc_info=True,
                stacklevel=3,  # report -> wrapper -> caller
            )

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    report(e)
                    return default_return  # type: ignore[return-value]

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                report(e)
                return default_return  # type: ignore[return-value]

        return sync_wrapper  # type: ignore[return-value]

    return decorator
