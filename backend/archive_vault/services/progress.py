"""
Progress events for long-running operations.

Observers are plain callables taking a ProgressEvent. They are informational
only: a failing observer is logged and ignored, never allowed to affect the
operation that reports to it.
"""
from dataclasses import asdict, dataclass
from typing import Callable, Dict, Optional

from ..core.logging_config import get_logger

logger = get_logger(__name__)

# hash, date, store, identify main document, parse, enumerate + write
IMPORT_STEPS_PER_ARCHIVE = 6


@dataclass
class ProgressEvent:
    operation: str
    current: int
    total: int
    step: str
    message: str = ""
    is_complete: bool = False

    @classmethod
    def complete(cls, operation: str, total: int, message: str) -> "ProgressEvent":
        return cls(
            operation=operation,
            current=total,
            total=total,
            step="done",
            message=message,
            is_complete=True,
        )

    def to_dict(self) -> Dict:
        return asdict(self)


ProgressObserver = Callable[[ProgressEvent], None]


def emit(observer: Optional[ProgressObserver], event: ProgressEvent) -> None:
    """Deliver event to observer; observer failures are logged and dropped."""
    if observer is None:
        return
    try:
        observer(event)
    except Exception as e:
        logger.debug(f"Progress observer failed on {event.operation}/{event.step}: {e}")


def import_position(archive_index: int, step_index: int) -> int:
    """Batch-wide position of step_index (0-based) of the archive at archive_index."""
    return archive_index * IMPORT_STEPS_PER_ARCHIVE + min(step_index, IMPORT_STEPS_PER_ARCHIVE - 1)


def import_total(archive_count: int) -> int:
    return max(archive_count * IMPORT_STEPS_PER_ARCHIVE, 1)
