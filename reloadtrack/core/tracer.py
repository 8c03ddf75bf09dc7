"""
Cascade tracing.

Traces go to a dedicated logger that also writes into an in-memory stream, so
a long-running process can dump what the last reload removed and why.
"""
import logging
from functools import wraps
from io import StringIO
from typing import Any, Callable, Union


class CascadeTracer:
    """Shared trace log for every cascade in the process."""
    _depth = 0

    # Setup logging
    _log_stream = StringIO()
    _logger = logging.getLogger("CascadeTracer")
    _handler = logging.StreamHandler(_log_stream)
    _handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    _logger.addHandler(_handler)
    _logger.setLevel(logging.INFO)

    @classmethod
    def get_logs(cls) -> str:
        """Get all trace logs as text."""
        return cls._log_stream.getvalue()

    @classmethod
    def clear_logs(cls) -> None:
        """Clear all trace logs."""
        cls._log_stream.truncate(0)
        cls._log_stream.seek(0)

    @classmethod
    def set_log_level(cls, level: Union[int, str]) -> None:
        """Set the logging level; DEBUG records every nested removal."""
        cls._logger.setLevel(level)
        cls._logger.info(f"Cascade trace level set to {level}")

    @classmethod
    def indent(cls) -> str:
        return "  " * cls._depth


def cascade_tracer(func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator for removal methods taking the entity name as first argument.
    Logs each call indented by how deep in the cascade it happens.
    """
    logger = CascadeTracer._logger

    @wraps(func)
    def wrapper(self: Any, name: Any, *args: Any, **kwargs: Any) -> Any:
        if not logger.isEnabledFor(logging.DEBUG):
            return func(self, name, *args, **kwargs)
        logger.debug(f"{CascadeTracer.indent()}{func.__name__}({name})")
        CascadeTracer._depth += 1
        try:
            result = func(self, name, *args, **kwargs)
        except Exception as e:
            logger.debug(f"{CascadeTracer.indent()}{func.__name__}({name}) failed: {str(e)}")
            raise
        finally:
            CascadeTracer._depth -= 1
        logger.debug(f"{CascadeTracer.indent()}{func.__name__}({name}) -> {result}")
        return result

    return wrapper
