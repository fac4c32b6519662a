"""
Structured logging for the CreatureRealm extraction toolkit.

Every entry carries the trace id of the request (or background warm-up)
that produced it, so a single scrape can be followed from fetch through
cache, extraction and merge.
"""
import uuid
import logging
import structlog
from contextvars import ContextVar
from typing import Any, Dict, Optional

from creaturerealm.config import config

trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")


def _new_trace_id() -> str:
    return uuid.uuid4().hex[:8]


def get_trace_id() -> str:
    """Current trace id; one is created lazily for untraced contexts."""
    trace_id = trace_id_var.get()
    if not trace_id:
        trace_id = set_trace_id()
    return trace_id


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Start a new trace in the current context and return its id."""
    trace_id = trace_id or _new_trace_id()
    trace_id_var.set(trace_id)
    return trace_id


def add_trace_id(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor stamping the trace id onto each entry."""
    event_dict.setdefault("trace_id", get_trace_id())
    return event_dict


def _renderer(fmt: str):
    if fmt == "console":
        return structlog.dev.ConsoleRenderer(colors=True)
    return structlog.processors.JSONRenderer()


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None):
    """
    Configure structlog. Defaults come from `LOG_LEVEL` and `LOG_FORMAT`
    (`json` or `console`).
    """
    level = (level or config.LOG_LEVEL).upper()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_id,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            _renderer(fmt or config.LOG_FORMAT),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


class LayerLogger:
    """
    Logger for one stage of the pipeline (fetcher, cache, catalog).

    Event names are fixed per method so log queries do not depend on the
    wording of individual call sites.
    """

    def __init__(self, layer_name: str):
        self.layer_name = layer_name
        self.logger = get_logger(layer_name)

    def _emit(self, level: str, event: str, **fields):
        getattr(self.logger, level)(event, layer=self.layer_name, **fields)

    def log_decision(self, decision: str, reason: str, url: Optional[str] = None, **extra):
        """A branch taken by this layer, e.g. stopping pagination."""
        self._emit("info", "decision_made", decision=decision, reason=reason, url=url, **extra)

    def log_action(self, action: str, status: str = "started", **extra):
        self._emit("info", f"action_{status}", action=action, **extra)

    def log_fallback(self, from_source: str, to_source: str, reason: str, **extra):
        """Serving from a secondary source, e.g. a stale cache entry after a failed fetch."""
        self._emit("warning", "fallback_triggered", from_source=from_source, to_source=to_source, reason=reason, **extra)

    def log_error(self, error: str, error_type: str = "unknown", **extra):
        self._emit("error", "error_occurred", error=error, error_type=error_type, **extra)

    def log_cache(self, event: str, key: str, **extra):
        """Cache bookkeeping: `hit`, `miss` or `store`."""
        self._emit("debug", f"cache_{event}", key=key, **extra)

    def log_extraction(self, section: str, count: int, **extra):
        """
        Outcome of one section extraction.

        Zero rows is a normal outcome on third-party pages and is logged
        as `section_absent`, never as an error.
        """
        event = "section_extracted" if count else "section_absent"
        self._emit("info", event, section=section, count=count, **extra)


configure_logging()
