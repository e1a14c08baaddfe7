"""Request-scoped logging: every line carries the trace id and session id."""

import logging
from typing import Any, MutableMapping, Tuple

from ..models.state import AgentState


class TraceAdapter(logging.LoggerAdapter):
    """Prefixes messages with the trace id and exposes trace/session ids as record extras."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return f"[trace={self.extra['trace_id']}] {msg}", kwargs


def trace_logger(logger: logging.Logger, state: AgentState) -> TraceAdapter:
    return TraceAdapter(logger, {"trace_id": state.trace_id, "session_id": state.session_id})
