"""
Exception formatting and logging for the proxy.

Failures raised while talking to arbitrary origins can carry odd payloads
(exception groups from task groups, objects whose ``__str__`` blows up), and
the pipeline formats them into client-facing error messages. Nothing here is
allowed to raise.
"""

import logging


def _safe_str(obj) -> str:
    """
    Convert an object to string, falling back to repr and then the type name.

    Args:
        obj: The object to convert to string

    Returns:
        A string representation of the object
    """
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def _sub_exceptions(exception) -> list:
    """The members of an exception group, or an empty list for anything else."""
    try:
        return list(getattr(exception, "exceptions", None) or [])
    except Exception:
        return []


def _describe(exception) -> str:
    if exception is None:
        return "NoneType: None"
    return f"{type(exception).__name__}: {_safe_str(exception)}"


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: Exception,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception, including each member when it is an exception group.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Proxy]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    try:
        safe_prefix = _safe_str(prefix) if prefix is not None else ""
        message = _safe_str(exception) if exception is not None else "None"
        members = _sub_exceptions(exception)

        if not members:
            logger.log(
                level,
                f"{safe_prefix} Exception: {message}",
                exc_info=exception if exception is not None else False,
            )
            return

        logger.log(
            level,
            f"{safe_prefix} Exception with {len(members)} sub-exceptions: {message}",
        )
        for i, member in enumerate(members):
            try:
                logger.log(
                    level,
                    f"{safe_prefix} Sub-exception {i+1}: {_describe(member)}",
                    exc_info=member,
                )
            except Exception:
                continue
    except Exception:
        # Logging must never take the request down with it
        try:
            logger.log(logging.ERROR, "Exception logging failed")
        except Exception:
            pass


def format_exception_message(exception: Exception) -> str:
    """
    Format an exception for the ``{"error": ...}`` payload.

    Exception groups list their members after the group message.
    """
    try:
        if exception is None:
            return "None"
        message = _safe_str(exception)
        members = _sub_exceptions(exception)
        if not members:
            return message
        joined = "; ".join(_describe(member) for member in members)
        return f"{message} (Sub-exceptions: {joined})"
    except Exception:
        return "<exception (formatting failed)>"
