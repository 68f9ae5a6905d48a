"""Scan event sinks and counters.

Services report what they do through a ``ScanEventSink`` instead of printing.
The default sink forwards events to the standard logger; tests inject a
``RecordingEventSink`` and assert on the recorded events directly.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


class ScanEventSink(Protocol):
    """Anything that accepts named scan events."""

    def emit(self, name: str, **fields: Any) -> None:
        ...


@dataclass
class ScanEvent:
    """One recorded event."""

    name: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ScanMetrics:
    """Aggregate counters for one process."""

    videos_fetched: int = 0
    videos_skipped: int = 0
    batches_completed: int = 0
    links_working: int = 0
    links_warning: int = 0
    links_broken: int = 0
    link_retries: int = 0
    quota_rotations: int = 0
    jobs_completed: int = 0
    jobs_failed: int = 0

    def record(self, name: str, fields: Dict[str, Any]) -> None:
        if name == "catalog.page_fetched":
            self.videos_fetched += int(fields.get("count", 0))
        elif name == "video.skipped":
            self.videos_skipped += 1
        elif name == "batch.completed":
            self.batches_completed += 1
        elif name == "link.checked":
            status = fields.get("status")
            if status == "working":
                self.links_working += 1
            elif status == "warning":
                self.links_warning += 1
            elif status == "broken":
                self.links_broken += 1
        elif name == "link.retry":
            self.link_retries += 1
        elif name == "credential.exhausted":
            self.quota_rotations += 1
        elif name == "job.completed":
            self.jobs_completed += 1
        elif name == "job.failed":
            self.jobs_failed += 1

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class LoggingEventSink:
    """Forward events to a logger and keep running counters."""

    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.DEBUG) -> None:
        self.log = log or logger
        self.level = level
        self.metrics = ScanMetrics()

    def emit(self, name: str, **fields: Any) -> None:
        self.metrics.record(name, fields)
        if self.log.isEnabledFor(self.level):
            details = " ".join(f"{key}={value}" for key, value in fields.items())
            self.log.log(self.level, f"{name} {details}".rstrip())


class RecordingEventSink:
    """Keep every event in memory."""

    def __init__(self) -> None:
        self.events: List[ScanEvent] = []
        self.metrics = ScanMetrics()

    def emit(self, name: str, **fields: Any) -> None:
        self.metrics.record(name, fields)
        self.events.append(ScanEvent(name=name, fields=dict(fields)))

    def names(self) -> List[str]:
        return [event.name for event in self.events]

    def of(self, name: str) -> List[ScanEvent]:
        return [event for event in self.events if event.name == name]


class NullEventSink:
    """Discard events."""

    def emit(self, name: str, **fields: Any) -> None:
        return None
