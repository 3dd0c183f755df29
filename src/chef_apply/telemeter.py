"""Timed capture of action executions"""

import logging
import os
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, ContextManager, Dict, Iterator, List, Optional

import yaml

logger = logging.getLogger(__name__)


class CaptureRecord:
    """Mutable record handed to the body of a timed capture"""

    def __init__(self, category: str, properties: Optional[Dict[str, Any]] = None):
        self.category = category
        self.properties: Dict[str, Any] = dict(properties or {})
        self.error: Optional[BaseException] = None

    def fail(self, error: BaseException) -> None:
        """Mark the captured block as failed"""
        self.error = error


class Telemeter:
    """Collects timing events for the current session"""

    def __init__(self, enabled: bool = True):
        """Initialize telemeter

        Args:
            enabled: When False, captures still run their block but record nothing
        """
        self.enabled = enabled
        self.events: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    @contextmanager
    def timed_capture(self, category: str, properties: Optional[Dict[str, Any]] = None) -> Iterator[CaptureRecord]:
        """Time the enclosed block and record one event when it exits

        The event is recorded on every exit path. An exception escaping the
        block also marks the event as failed before it propagates.

        Args:
            category: Event category
            properties: Extra properties stored with the event

        Yields:
            CaptureRecord the block can mark as failed
        """
        record = CaptureRecord(category, properties)
        started = time.monotonic()
        try:
            yield record
        except BaseException as e:
            if record.error is None:
                record.fail(e)
            raise
        finally:
            self._record(record, time.monotonic() - started)

    def timed_action_capture(self, action) -> ContextManager[CaptureRecord]:
        """Time an action's execution under the ``action`` category"""
        properties = {"action": action.name()}
        target = getattr(action.target_host, "hostname", None)
        if target:
            properties["target"] = target
        return self.timed_capture("action", properties)

    def _record(self, record: CaptureRecord, duration: float) -> None:
        outcome = "failure" if record.error is not None else "success"
        logger.debug(f"Captured {record.category} {record.properties} in {duration:.3f}s ({outcome})")
        if not self.enabled:
            return

        properties = dict(record.properties)
        properties["duration"] = round(duration, 6)
        properties["outcome"] = outcome
        if record.error is not None:
            properties["error"] = type(record.error).__name__

        event = {
            "event": record.category,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "properties": properties,
        }
        with self._lock:
            self.events.append(event)

    def dump(self, session_file: str) -> Optional[Path]:
        """Write recorded events to a YAML session file

        Args:
            session_file: Destination path (``~`` is expanded)

        Returns:
            Path written, or None when there was nothing to write
        """
        with self._lock:
            events = list(self.events)

        if not self.enabled or not events:
            logger.debug("No telemetry events to write")
            return None

        path = Path(os.path.expanduser(session_file))
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump({"events": events}, f, default_flow_style=False, sort_keys=False)
        logger.info(f"Wrote {len(events)} telemetry event(s) to {path}")
        return path

    def reset(self) -> None:
        """Drop all recorded events"""
        with self._lock:
            self.events.clear()


_default_telemeter = Telemeter()


def get_telemeter() -> Telemeter:
    """Return the process-wide telemeter"""
    return _default_telemeter


def timed_action_capture(action):
    """Time ``action`` with the process-wide telemeter"""
    return _default_telemeter.timed_action_capture(action)
