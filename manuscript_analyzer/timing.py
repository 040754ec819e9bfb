"""Transparent timing for pipeline nodes.

Provides a ``@timed_node`` decorator and a ``collect_metrics()`` context
manager.  Together they let ``pipeline.py`` stay pure analysis logic while
every decorated node function records its duration.

Usage in a node module::

    from ..timing import timed_node

    @timed_node("passive_voice", "detector")
    def detect_passive_voice(text: str) -> DetectorResult:
        ...

Usage in the pipeline::

    with collect_metrics() as metrics:
        chapters = segmentation.split_into_chapters(text, outline)
        passive = detectors.detect_passive_voice(text)
    report = _build_report(metrics)
"""

from __future__ import annotations

import contextvars
import functools
import logging
import time

from .models import NodeMetrics

log = logging.getLogger(__name__)

_current_metrics: contextvars.ContextVar[list[NodeMetrics] | None] = (
    contextvars.ContextVar("_current_metrics", default=None)
)


class collect_metrics:
    """Context manager that activates metric collection for ``@timed_node``.

    Yields a ``list[NodeMetrics]`` that decorated functions append to.
    Nested contexts are isolated; the outer list is restored on exit.
    """

    def __enter__(self) -> list[NodeMetrics]:
        self._metrics: list[NodeMetrics] = []
        self._token = _current_metrics.set(self._metrics)
        return self._metrics

    def __exit__(self, *exc) -> None:
        _current_metrics.reset(self._token)


def timed_node(name: str, node_type: str):
    """Decorator that records the duration of a pipeline node.

    If no ``collect_metrics`` context is active the function runs normally
    and only the debug log line is emitted.
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            metrics = _current_metrics.get(None)
            t0 = time.monotonic_ns()
            result = fn(*args, **kwargs)
            _record(metrics, name, node_type, t0)
            return result

        return wrapper

    return decorator


def _record(
    metrics: list[NodeMetrics] | None,
    name: str,
    node_type: str,
    t0: int,
) -> None:
    duration_ms = (time.monotonic_ns() - t0) // 1_000_000
    if metrics is None:
        log.debug("%s: %d ms", name, duration_ms)
        return
    log.info("%s: %d ms", name, duration_ms)
    metrics.append(NodeMetrics(name, node_type, duration_ms))
