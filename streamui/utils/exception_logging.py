"""
Logging helpers for exceptions raised by host callbacks.

Subscribers, value listeners and action handlers are supplied by the host. A
failure inside one of them must be visible in the logs but must never break
the stream that triggered the notification.
"""

import logging


def _safe_str(obj) -> str:
    """Convert an object to string, falling back when __str__ itself fails."""
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} (string conversion failed)>"


def _sub_exceptions(exception) -> list:
    try:
        return list(getattr(exception, "exceptions", None) or [])
    except Exception:
        return []


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: BaseException,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception, expanding exception groups into one record per member.

    Never raises, even for broken exception objects or a failing logger.

    Args:
        logger: The logger instance to use
        prefix: Component prefix for the message (e.g., "[UISession]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    try:
        message = _safe_str(exception) if exception is not None else "None"
        children = _sub_exceptions(exception)
        if children:
            logger.log(
                level,
                f"{prefix} Exception with {len(children)} sub-exceptions: {message}",
            )
            for i, child in enumerate(children):
                logger.log(
                    level,
                    f"{prefix} Sub-exception {i+1}: "
                    f"{type(child).__name__}: {_safe_str(child)}",
                    exc_info=child,
                )
            return
        logger.log(
            level,
            f"{prefix} Exception: {message}",
            exc_info=exception if exception is not None else False,
        )
    except Exception:
        try:
            logger.log(logging.ERROR, f"{prefix} Exception (logging failed)")
        except Exception:
            pass


def format_exception_message(exception: BaseException) -> str:
    """Single-line description of an exception, including group members."""
    if exception is None:
        return "None"
    children = _sub_exceptions(exception)
    if not children:
        return _safe_str(exception)
    parts = "; ".join(f"{type(c).__name__}: {_safe_str(c)}" for c in children)
    return f"{_safe_str(exception)} (Sub-exceptions: {parts})"
