"""
Exception logging helpers for proxy failures.

Upstream errors usually wrap a transport exception (``UpstreamError`` from an
``httpx.ConnectError``), and task groups may raise exception groups. Both are
flattened into a single readable line. None of these helpers ever raise.
"""

import logging

# Deep enough for wrapped transport errors, short enough for a log line.
MAX_CAUSE_DEPTH = 5


def _safe_str(obj) -> str:
    """
    Convert an object to string even when its ``__str__`` or ``__repr__`` is broken.
    """
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def _sub_exceptions(exception) -> list:
    try:
        return list(getattr(exception, "exceptions", None) or [])
    except Exception:
        return []


def _cause_chain(exception) -> list:
    """Explicit causes of ``exception``, outermost first, cycle safe."""
    chain = []
    seen = {id(exception)}
    cause = getattr(exception, "__cause__", None)
    while cause is not None and id(cause) not in seen and len(chain) < MAX_CAUSE_DEPTH:
        seen.add(id(cause))
        chain.append(cause)
        cause = getattr(cause, "__cause__", None)
    return chain


def format_exception_message(exception) -> str:
    """
    One-line description of an exception, with its causes and sub-exceptions.

    Example: ``upstream unreachable (caused by ConnectError: refused)``
    """
    if exception is None:
        return "None"
    try:
        message = _safe_str(exception)
        causes = _cause_chain(exception)
        if causes:
            described = " <- ".join(
                f"{type(c).__name__}: {_safe_str(c)}" for c in causes
            )
            message = f"{message} (caused by {described})"
        subs = _sub_exceptions(exception)
        if subs:
            described = "; ".join(f"{type(s).__name__}: {_safe_str(s)}" for s in subs)
            message = f"{message} (Sub-exceptions: {described})"
        return message
    except Exception:
        return f"<{type(exception).__name__} (formatting failed)>"


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: Exception,
    level: int = logging.ERROR,
) -> None:
    """
    Log ``exception`` under ``prefix``; each sub-exception of a group gets its own line.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g. "[GitProxy]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    safe_prefix = _safe_str(prefix) if prefix is not None else ""
    try:
        subs = _sub_exceptions(exception)
        if subs:
            logger.log(
                level,
                f"{safe_prefix} Exception with {len(subs)} sub-exceptions: {_safe_str(exception)}",
            )
            for i, sub in enumerate(subs):
                logger.log(
                    level,
                    f"{safe_prefix} Sub-exception {i + 1}: {type(sub).__name__}: {_safe_str(sub)}",
                    exc_info=sub,
                )
            return
        logger.log(
            level,
            f"{safe_prefix} Exception: {format_exception_message(exception)}",
            exc_info=exception if exception is not None else False,
        )
    except Exception:
        # Logging must never break the exchange.
        try:
            logger.log(level, f"{safe_prefix} Exception (logging failed)")
        except Exception:
            pass
