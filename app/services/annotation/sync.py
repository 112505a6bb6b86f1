"""
Sync Engine

Reconciles a target annotation list for one image against the remote store.

Every edit is an EditCommand: the local part runs first and always succeeds,
the remote part pushes a diff (one batched delete, then one full upsert).
A failed remote push is reported but never rolls back the local state; the
local list stays authoritative for the editing session and any retry is
manual.
"""
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List, Optional

from .models import Annotation, ImageRecord, clone_annotations
from .notifications import NotificationCenter
from app.services.ocr.exceptions import ApiError

if TYPE_CHECKING:
    from app.services.ocr.client import LabelingApiClient

logger = logging.getLogger(__name__)

SYNC_FAILED_MESSAGE = "Failed to sync OCR changes."

# (image_id, annotations, replaying)
LocalApplier = Callable[[int, List[Annotation], bool], None]


def ids_to_delete(existing: List[Annotation], target: List[Annotation]) -> List[str]:
    """Ids present remotely but absent from the target list, in existing order"""
    target_ids = {a.id for a in target}
    return [a.id for a in existing if a.id not in target_ids]


@dataclass
class EditCommand:
    """
    An optimistic edit of one image's annotation list

    Attributes:
        image_id: Image the edit applies to
        previous: Snapshot before the edit
        next: Snapshot after the edit
        replaying: True for undo/redo replays (not recorded into history)
        local_apply: Updates in-memory state, synchronous
        remote_sync: Pushes the change to the remote store, may raise ApiError
    """
    image_id: int
    previous: List[Annotation]
    next: List[Annotation]
    replaying: bool
    local_apply: Callable[[], None]
    remote_sync: Callable[[], None]


@dataclass
class SyncResult:
    command: Optional[EditCommand] = None
    synced: bool = False
    error: Optional[str] = None


class SyncEngine:
    """
    Pushes annotation lists to the remote store

    Args:
        client: REST client for the project's image endpoints
        local_apply: Callback applying a list to local state; receives the
            replaying flag so replays skip history
        notifications: Channel for sync failure messages
    """

    def __init__(
        self,
        client: "LabelingApiClient",
        local_apply: LocalApplier,
        notifications: NotificationCenter,
    ):
        self.client = client
        self._local_apply = local_apply
        self.notifications = notifications

    def build_command(
        self, image: ImageRecord, target: List[Annotation], replaying: bool = False
    ) -> EditCommand:
        previous = clone_annotations(image.annotations)
        target = clone_annotations(target)
        image_id = image.id

        def local_apply():
            self._local_apply(image_id, clone_annotations(target), replaying)

        def remote_sync():
            self._push(image_id, previous, target)

        return EditCommand(
            image_id=image_id,
            previous=previous,
            next=target,
            replaying=replaying,
            local_apply=local_apply,
            remote_sync=remote_sync,
        )

    def apply(
        self, image: Optional[ImageRecord], target: List[Annotation], replaying: bool = False
    ) -> SyncResult:
        """
        Make `target` the annotation list of `image`, locally then remotely

        Args:
            image: Image as it is before the edit
            target: Desired annotation list
            replaying: Set by undo/redo so the apply is not recorded

        Returns:
            SyncResult; `synced` is False if the remote push failed
        """
        if image is None or not image.id:
            return SyncResult()

        command = self.build_command(image, target, replaying=replaying)
        command.local_apply()

        try:
            command.remote_sync()
        except ApiError as e:
            logger.error("Error syncing OCR changes for image %s: %s", command.image_id, e)
            self.notifications.error(SYNC_FAILED_MESSAGE)
            return SyncResult(command=command, synced=False, error=str(e))

        return SyncResult(command=command, synced=True)

    def _push(self, image_id: int, existing: List[Annotation], target: List[Annotation]) -> None:
        if not target:
            # Empty id list is the backend's "delete all" request
            self.client.delete_annotations(image_id, [])
            return

        stale_ids = ids_to_delete(existing, target)
        if stale_ids:
            self.client.delete_annotations(image_id, stale_ids)
        self.client.upsert_annotations(image_id, target)
        logger.debug(
            "Synced image %s: %d upserted, %d deleted", image_id, len(target), len(stale_ids)
        )
