"""
Per-image undo/redo history of annotation lists
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .models import Annotation, ImageRecord, annotations_equal, clone_annotations
from .sync import SyncEngine

logger = logging.getLogger(__name__)


@dataclass
class HistoryEntry:
    """
    Undo/redo stacks for one image

    Attributes:
        past: Snapshots before each edit, oldest first
        future: Snapshots undone and available for redo, oldest first
    """
    past: List[List[Annotation]] = field(default_factory=list)
    future: List[List[Annotation]] = field(default_factory=list)


class HistoryManager:
    """
    Records snapshots of annotation lists and replays them through the
    sync engine

    Only one undo/redo apply may be outstanding at a time. While it runs,
    record() ignores every write, so the replay is never recorded as a new
    edit.

    Args:
        sync_engine: Engine used to apply replayed snapshots
        get_image: Returns the current ImageRecord for an image id
    """

    def __init__(self, sync_engine: SyncEngine, get_image: Callable[[int], Optional[ImageRecord]]):
        self.sync_engine = sync_engine
        self._get_image = get_image
        self._entries: Dict[int, HistoryEntry] = {}
        self._applying = False

    @property
    def is_replaying(self) -> bool:
        return self._applying

    def entry(self, image_id: int) -> HistoryEntry:
        """History entry of an image, created lazily"""
        if image_id not in self._entries:
            self._entries[image_id] = HistoryEntry()
        return self._entries[image_id]

    def can_undo(self, image_id: int) -> bool:
        entry = self._entries.get(image_id)
        return bool(entry and entry.past)

    def can_redo(self, image_id: int) -> bool:
        entry = self._entries.get(image_id)
        return bool(entry and entry.future)

    def record(self, image_id: int, previous: List[Annotation], next: List[Annotation]) -> bool:
        """
        Push `previous` onto the undo stack of an image

        Skipped while a replay is running, when nothing changed, or when the
        top of the stack already holds the same snapshot.

        Returns:
            True if a snapshot was pushed
        """
        if self._applying:
            return False
        if annotations_equal(previous, next):
            return False

        entry = self.entry(image_id)
        snapshot = clone_annotations(previous)
        if entry.past and annotations_equal(entry.past[-1], snapshot):
            return False

        entry.past.append(snapshot)
        entry.future = []
        return True

    def undo(self, image_id: int) -> bool:
        """
        Restore the previous snapshot of an image

        Returns:
            True if a snapshot was applied; False if rejected or nothing to undo
        """
        return self._step(image_id, undo=True)

    def redo(self, image_id: int) -> bool:
        """Re-apply the most recently undone snapshot of an image"""
        return self._step(image_id, undo=False)

    def _step(self, image_id: int, undo: bool) -> bool:
        if self._applying:
            logger.debug("History apply already in progress, dropping request")
            return False

        image = self._get_image(image_id)
        if image is None:
            return False

        entry = self.entry(image_id)
        source, target = (entry.past, entry.future) if undo else (entry.future, entry.past)
        if not source:
            return False

        snapshot = source.pop()
        target.append(clone_annotations(image.annotations))

        self._applying = True
        try:
            self.sync_engine.apply(image, clone_annotations(snapshot), replaying=True)
        finally:
            self._applying = False
        return True

    def clear(self, image_id: Optional[int] = None) -> None:
        """Forget the history of one image, or of all images"""
        if image_id is None:
            self._entries.clear()
        else:
            self._entries.pop(image_id, None)
        self._applying = False
