"""
Structured telemetry for directory lookups.
[CTX:PBI-1:1-5:TELEM]

This module provides structured logging capabilities for understanding:
- Which users, repositories and files a validation run looked up
- Lookup outcomes (found, not found, error) and status codes
- Latency of the external directory service
"""
import json
import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class TelemetryLevel(Enum):
    """Telemetry verbosity levels."""
    INFO = "info"
    DEBUG = "debug"


class LookupKind(Enum):
    """Kinds of directory lookups."""
    USER = "user"
    REPOSITORY = "repository"
    FILE = "file"
    LISTING = "listing"


class LookupOutcome(Enum):
    """Lookup result types."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"        # Non-404 failure status or transport failure


# [CTX:PBI-1:1-5:TELEM] Telemetry event structure
@dataclass
class LookupEvent:
    """
    A single telemetry event capturing one directory lookup.

    Attributes:
        timestamp: ISO 8601 timestamp of event
        service: Directory service name (e.g., "github")
        kind: Lookup kind (user, repository, file, listing)
        target: What was looked up (login, owner/repo, owner/repo:path)
        status: HTTP status code (None if no response was received)
        elapsed_ms: Request duration in milliseconds
        outcome: found, not_found or error
    """
    timestamp: str
    service: str
    kind: str
    target: str
    status: Optional[int]
    elapsed_ms: float
    outcome: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for logging."""
        return asdict(self)

    def to_json(self) -> str:
        """Convert event to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def to_keyvalue(self) -> str:
        """Convert event to key=value format."""
        return " ".join(f"{key}={value}" for key, value in self.to_dict().items())


# [CTX:PBI-1:1-5:TELEM] In-memory statistics tracker
@dataclass
class TelemetryStats:
    """
    Aggregated statistics for telemetry analysis.

    Useful for tests and the end-of-run summary.
    """
    total_lookups: int = 0
    total_elapsed_time: float = 0.0
    outcomes: Dict[str, int] = field(default_factory=dict)
    status_codes: Dict[int, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert stats to dictionary."""
        avg_latency = (
            self.total_elapsed_time / self.total_lookups
            if self.total_lookups > 0
            else 0.0
        )

        return {
            "total_lookups": self.total_lookups,
            "avg_latency_ms": round(avg_latency, 2),
            "outcomes": self.outcomes,
            "status_codes": self.status_codes,
        }


# [CTX:PBI-1:1-5:TELEM] Main telemetry recorder
class TelemetryRecorder:
    """
    Records and emits structured telemetry for directory lookups.

    Features:
    - Structured logging in JSON or key=value format
    - Configurable verbosity (info/debug)
    - Optional in-memory statistics collection
    - Thread-safe operation
    """

    def __init__(
        self,
        level: TelemetryLevel = TelemetryLevel.INFO,
        format_json: bool = True,
        collect_stats: bool = False
    ):
        """
        Initialize telemetry recorder.

        Args:
            level: Logging verbosity level
            format_json: If True, log as JSON; otherwise use key=value
            collect_stats: If True, collect in-memory statistics
        """
        self.level = level
        self.format_json = format_json
        self.collect_stats = collect_stats

        self._stats = TelemetryStats()
        self._stats_lock = threading.Lock()

        # Event history (for testing)
        self._events: List[LookupEvent] = []
        self._events_lock = threading.Lock()

    def record(self, event: LookupEvent) -> None:
        """
        Record a telemetry event.

        Args:
            event: Event to record
        """
        if self.format_json:
            log_message = f"[CTX:PBI-1:1-5:TELEM] {event.to_json()}"
        else:
            log_message = f"[CTX:PBI-1:1-5:TELEM] {event.to_keyvalue()}"

        if self.level == TelemetryLevel.DEBUG:
            logger.debug(log_message)
        elif event.outcome != LookupOutcome.FOUND.value:
            # Only failed lookups are logged at INFO level
            logger.info(log_message)
        else:
            logger.debug(log_message)

        if self.collect_stats:
            with self._stats_lock:
                self._stats.total_lookups += 1
                self._stats.total_elapsed_time += event.elapsed_ms
                self._stats.outcomes[event.outcome] = (
                    self._stats.outcomes.get(event.outcome, 0) + 1
                )
                if event.status:
                    self._stats.status_codes[event.status] = (
                        self._stats.status_codes.get(event.status, 0) + 1
                    )

        with self._events_lock:
            self._events.append(event)

    def get_stats(self) -> TelemetryStats:
        """Get current statistics snapshot."""
        with self._stats_lock:
            return TelemetryStats(
                total_lookups=self._stats.total_lookups,
                total_elapsed_time=self._stats.total_elapsed_time,
                outcomes=self._stats.outcomes.copy(),
                status_codes=self._stats.status_codes.copy(),
            )

    def reset_stats(self) -> None:
        """Reset statistics."""
        with self._stats_lock:
            self._stats = TelemetryStats()

    def get_events(self) -> List[LookupEvent]:
        """Get all recorded events (for testing)."""
        with self._events_lock:
            return self._events.copy()

    def clear_events(self) -> None:
        """Clear event history."""
        with self._events_lock:
            self._events.clear()


# [CTX:PBI-1:1-5:TELEM] Global telemetry recorder instance
_global_recorder: Optional[TelemetryRecorder] = None
_recorder_lock = threading.Lock()


def get_recorder() -> TelemetryRecorder:
    """
    Get the global telemetry recorder instance.

    Creates a default recorder if none exists.
    """
    global _global_recorder

    if _global_recorder is None:
        with _recorder_lock:
            if _global_recorder is None:
                _global_recorder = TelemetryRecorder()

    return _global_recorder


def set_recorder(recorder: TelemetryRecorder) -> None:
    """
    Set the global telemetry recorder instance.

    Args:
        recorder: Recorder instance to use globally
    """
    global _global_recorder

    with _recorder_lock:
        _global_recorder = recorder


def create_event(
    service: str,
    kind: LookupKind,
    target: str,
    outcome: LookupOutcome,
    status: Optional[int] = None,
    elapsed_ms: float = 0.0,
) -> LookupEvent:
    """
    Helper to create a lookup event with current timestamp.

    Args:
        service: Directory service name
        kind: Lookup kind
        target: What was looked up
        outcome: Lookup outcome
        status: HTTP status code
        elapsed_ms: Request duration in milliseconds

    Returns:
        LookupEvent ready for recording
    """
    return LookupEvent(
        timestamp=datetime.now(timezone.utc).isoformat(),
        service=service,
        kind=kind.value,
        target=target,
        status=status,
        elapsed_ms=elapsed_ms,
        outcome=outcome.value,
    )
