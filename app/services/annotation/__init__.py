"""
Annotation Service

Per-image OCR annotation state for the labeling tool: data models, the
in-memory store, selection, undo/redo history, remote sync and the blocking
coordinator.

Usage:
    from app.services.annotation import LabelingSession
    from app.services.ocr import LabelingApiClient

    client = LabelingApiClient("http://localhost:8002/api/")
    session = LabelingSession(client)
    session.open_project(7, "ocr", images=[{"id": 1, "ocr_annotations": []}])

    # Edit, then step back
    session.update_annotations([{"id": "a", "type": "rect", "points": [{"x": 0, "y": 0}, {"x": 10, "y": 10}]}])
    session.undo()

    # Staged inference over every unvalidated page
    summary = session.run_bulk_inference()
"""
from .models import (
    Point,
    Annotation,
    ImageRecord,
    normalize_annotations,
    annotations_equal,
    clone_annotations,
)
from .store import AnnotationStore
from .selection import SelectionManager
from .blocking import BlockingCoordinator
from .notifications import Notification, NotificationCenter, Severity
from .sync import EditCommand, SyncEngine, SyncResult
from .history import HistoryEntry, HistoryManager

# The session pulls in the OCR client, which imports the models above
_session_module = None


def __getattr__(name):
    """Lazy load the session controller to avoid a circular import with app.services.ocr."""
    global _session_module
    if name == "LabelingSession":
        if _session_module is None:
            from . import session as _session_module
        return getattr(_session_module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "Point",
    "Annotation",
    "ImageRecord",
    "normalize_annotations",
    "annotations_equal",
    "clone_annotations",
    "AnnotationStore",
    "SelectionManager",
    "BlockingCoordinator",
    "Notification",
    "NotificationCenter",
    "Severity",
    "EditCommand",
    "SyncEngine",
    "SyncResult",
    "HistoryEntry",
    "HistoryManager",
    "LabelingSession",
]
