"""Fire-and-forget audit logging of computed results."""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class AuditSink(Protocol):
    def record(self, entry: Dict[str, object]) -> None:
        ...


class AuditDispatcher:
    """Hands audit entries to a background worker and never waits for them."""

    def __init__(self, sink: AuditSink, *, max_workers: int = 2) -> None:
        self.sink = sink
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="audit")

    def submit(self, entry: Dict[str, object]) -> Optional[Future]:
        try:
            future = self._executor.submit(self.sink.record, dict(entry))
        except RuntimeError as exc:
            logger.warning("audit write not scheduled (%s)", exc)
            return None
        future.add_done_callback(_log_failure)
        return future

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


def _log_failure(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.warning("audit write failed (%s)", exc)
