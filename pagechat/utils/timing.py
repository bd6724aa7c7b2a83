import inspect
import time
import functools
import logging

logger = logging.getLogger(__name__)


def _log(func, start_time: float) -> None:
    latency_ms = (time.perf_counter() - start_time) * 1000
    logger.debug(f"{func.__qualname__} took {latency_ms:.2f}ms")


def measure_latency(func):
    """Log how long a pipeline step takes. Works on plain and async callables.

    The wrapped callable's return value is passed through untouched; the
    timing is logged even when the call raises.
    """
    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                _log(func, start_time)
        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            _log(func, start_time)
    return wrapper
