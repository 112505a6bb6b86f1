"""
Labeling Session

One object per open project. It owns the annotation store, the selection,
the per-image history, the sync engine, the inference pipeline and the
blocking coordinator, and exposes the editing operations the page calls.

No operation raises: outcomes are return values plus notifications.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from app import config
from app.services.ocr.client import (
    IMAGE_ENDPOINT_BASE,
    OCR_ENDPOINT_BASE,
    LabelingApiClient,
)
from app.services.ocr.exceptions import ApiError
from app.services.ocr.pipeline import InferencePipeline
from app.services.ocr.types import (
    BulkEvent,
    BulkItemStatus,
    BulkStage,
    BulkSummary,
    InferenceResult,
    ModelSelection,
    ModelType,
    ProjectType,
)
from .blocking import BlockingCoordinator
from .history import HistoryManager
from .models import (
    Annotation,
    ImageRecord,
    clone_annotations,
    normalize_annotations,
)
from .notifications import NotificationCenter, Severity
from .selection import SelectionManager
from .store import AnnotationStore
from .sync import SyncEngine, SyncResult

logger = logging.getLogger(__name__)

VALIDATED_PAGE_MESSAGE = "This page is validated. Unvalidate it to run inference."
NO_MODEL_MESSAGE = "Select at least one model before running inference."

ImagePayload = Union[ImageRecord, Dict[str, Any]]


def _category_names(categories: Optional[Iterable[Any]]) -> List[str]:
    names = []
    for category in categories or []:
        name = category.get("name") if isinstance(category, dict) else category
        if name:
            names.append(str(name))
    return names


class LabelingSession:
    """
    Per-project editing controller

    Args:
        client: REST client for the labeling backend
        settings: Session settings (model defaults); module defaults if None
    """

    def __init__(self, client: LabelingApiClient, settings: Optional[config.LabelingSettings] = None):
        self.client = client
        self.settings = settings or config.LabelingSettings()

        self.notifications = NotificationCenter()
        self.blocking = BlockingCoordinator()
        self.store = AnnotationStore()
        self.selection = SelectionManager()
        self.sync = SyncEngine(client, self._apply_locally, self.notifications)
        self.history = HistoryManager(self.sync, self.store.get_image)
        self.pipeline = InferencePipeline(client, categories=lambda: list(self.categories))
        self.model_selection = ModelSelection()

        self.project_id: Optional[int] = None
        self.project_type = ProjectType.OCR
        self.categories: List[str] = []
        self.active_image_id: Optional[int] = None
        self.model_config: Optional[Dict[str, Any]] = None
        self.models_loaded = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open_project(
        self,
        project_id: Optional[int],
        project_type: Union[ProjectType, str],
        images: Iterable[ImagePayload] = (),
        categories: Optional[Iterable[Any]] = None,
    ) -> bool:
        """
        Load a project; any state of a previously open project is dropped

        Returns:
            False if the project type, an image payload or the category
            list is malformed. The current state is then left as it was.
        """
        try:
            project_type = ProjectType(project_type)
            records = [self._to_record(payload) for payload in images]
            category_names = _category_names(categories)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error("Cannot open project %s: %s", project_id, e)
            self.notifications.error("Invalid project: unknown type or malformed entry.")
            return False

        self.close()
        self.project_id = project_id
        self.project_type = project_type
        self.pipeline.project_type = self.project_type
        self.client.endpoint_base = OCR_ENDPOINT_BASE if self.is_ocr_project else IMAGE_ENDPOINT_BASE
        self.categories = category_names

        for record in records:
            self.store.add_image(record)
        if self.store.image_ids:
            self.set_active_image(self.store.image_ids[0])
        logger.info(
            "Opened project %s (%s) with %d image(s)",
            project_id, self.project_type.value, len(self.store),
        )
        return True

    def close(self) -> None:
        """Tear down per-project state, including in-flight guards"""
        self.history.clear()
        self.selection.set_active_image(None)
        self.blocking.reset()
        self.pipeline.reset()
        self.notifications.clear()
        self.store.clear()
        self.active_image_id = None
        self.model_config = None
        self.models_loaded = False

    @property
    def is_ocr_project(self) -> bool:
        return self.project_type.is_ocr

    @property
    def is_blocked(self) -> bool:
        return self.blocking.is_blocked

    # ------------------------------------------------------------------
    # Images and selection
    # ------------------------------------------------------------------

    @property
    def images(self) -> List[ImageRecord]:
        return self.store.images

    @property
    def active_image(self) -> Optional[ImageRecord]:
        if self.active_image_id is None:
            return None
        return self.store.get_image(self.active_image_id)

    @property
    def bulk_status(self) -> Dict[int, BulkItemStatus]:
        return self.pipeline.statuses

    @staticmethod
    def _to_record(payload: ImagePayload) -> ImageRecord:
        return payload if isinstance(payload, ImageRecord) else ImageRecord.from_dict(payload)

    def add_image(self, payload: ImagePayload) -> ImageRecord:
        return self.store.add_image(self._to_record(payload))

    def remove_image(self, image_id: int) -> bool:
        removed = self.store.remove_image(image_id)
        if removed:
            self.history.clear(image_id)
            if image_id == self.active_image_id:
                remaining = self.store.image_ids
                self.set_active_image(remaining[0] if remaining else None)
        return removed

    def set_active_image(self, image_id: Optional[int]) -> None:
        """Switch the current image; the selection is cleared"""
        self.active_image_id = image_id
        self.selection.set_active_image(image_id)
        self.selection.clear()

    def select(self, ids: Iterable[str]) -> List[str]:
        """Replace the selection; ids not on the active image are dropped"""
        self.selection.select(ids)
        image = self.active_image
        self.selection.reconcile(image.annotations if image else [])
        return self.selection.ids

    @property
    def selected_annotations(self) -> List[Annotation]:
        image = self.active_image
        if image is None:
            return []
        return self.selection.selected_annotations(image.annotations)

    # ------------------------------------------------------------------
    # Local state
    # ------------------------------------------------------------------

    def _apply_locally(self, image_id: int, annotations: List[Annotation], replaying: bool) -> None:
        image = self.store.get_image(image_id)
        if image is None:
            return
        if not replaying:
            self.history.record(image_id, image.annotations, annotations)
        self.store.set_annotations(image_id, annotations)
        if image_id == self.selection.image_id:
            self.selection.reconcile(annotations)

    def handle_image_updated(self, payload: ImagePayload) -> Optional[ImageRecord]:
        """
        Merge a remote image payload into the store

        Annotation changes are recorded into history. A payload without an
        annotation list keeps the local one.
        """
        if isinstance(payload, ImageRecord):
            payload = payload.to_dict()
        image_id = payload.get("id")
        current = self.store.get_image(image_id)
        if current is None:
            return None

        updated = ImageRecord.from_dict({**current.to_dict(), **payload})
        if "ocr_annotations" in payload and self.is_ocr_project:
            self._apply_locally(image_id, updated.annotations, replaying=self.history.is_replaying)
        else:
            updated.annotations = clone_annotations(current.annotations)

        current.image = updated.image
        current.original_filename = updated.original_filename
        current.is_label = updated.is_label
        return current

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def commit(self, image: Optional[ImageRecord], annotations: List[Annotation]) -> SyncResult:
        """Apply a new annotation list to an image, recorded into history"""
        if not self.is_ocr_project or image is None:
            return SyncResult()
        return self.sync.apply(image, annotations)

    def update_annotations(self, annotations: Iterable[Any]) -> SyncResult:
        """Replace the active image's annotations (an edit made on the canvas)"""
        if self.is_blocked:
            return SyncResult()
        return self.commit(self.active_image, normalize_annotations(annotations))

    def delete_annotations(self, ids: Iterable[str]) -> SyncResult:
        image = self.active_image
        if self.is_blocked or image is None:
            return SyncResult()
        doomed = set(ids)
        if not doomed:
            return SyncResult()
        remaining = [a for a in image.annotations if a.id not in doomed]
        return self.commit(image, remaining)

    def delete_selected(self) -> SyncResult:
        return self.delete_annotations(self.selection.ids)

    def update_annotation_text(self, annotation_id: str, text: str) -> SyncResult:
        image = self.active_image
        if self.is_blocked or image is None:
            return SyncResult()
        annotations = clone_annotations(image.annotations)
        for annotation in annotations:
            if annotation.id == annotation_id:
                annotation.text = text
                break
        else:
            return SyncResult()
        return self.commit(image, annotations)

    def apply_category_to_selection(self, category: str) -> SyncResult:
        """Assign a category to every selected annotation of the active image"""
        image = self.active_image
        if not self.is_ocr_project or self.is_blocked or image is None or not len(self.selection):
            return SyncResult()
        if category not in self.categories:
            return SyncResult()
        annotations = clone_annotations(image.annotations)
        for annotation in annotations:
            if annotation.id in self.selection:
                annotation.category = category
        return self.commit(image, annotations)

    def clear_annotations(self) -> SyncResult:
        """Remove every annotation of the active image"""
        image = self.active_image
        if self.is_blocked or image is None:
            return SyncResult()
        result = self.commit(image, [])
        self.selection.clear()
        if result.synced:
            self.notifications.info("OCR annotations cleared.")
        return result

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def undo(self) -> bool:
        image = self.active_image
        if not self.is_ocr_project or image is None or self.is_blocked:
            return False
        return self.history.undo(image.id)

    def redo(self) -> bool:
        image = self.active_image
        if not self.is_ocr_project or image is None or self.is_blocked:
            return False
        return self.history.redo(image.id)

    @property
    def can_undo(self) -> bool:
        return self.active_image_id is not None and self.history.can_undo(self.active_image_id)

    @property
    def can_redo(self) -> bool:
        return self.active_image_id is not None and self.history.can_redo(self.active_image_id)

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def toggle_model(self, model: Union[ModelType, str]) -> None:
        self.model_selection.toggle(ModelType(model))

    def has_selected_model(self) -> bool:
        return self.pipeline.has_selected_model(self.model_selection)

    def recognize_selected(self) -> bool:
        """Re-recognize the text of the selected shapes only"""
        if not self.is_ocr_project or self.is_blocked:
            return False
        image = self.active_image
        if image is None or not image.id:
            return False
        if image.is_label:
            self.notifications.info(VALIDATED_PAGE_MESSAGE)
            return False
        selected = self.selection.selected_annotations(image.annotations)
        if not selected:
            return False

        try:
            with self.blocking.blocking("Recognizing selection..."):
                updated, _ = self.client.recognize_text(image.id, selected)
        except ApiError as e:
            logger.error("Error recognizing selected regions on image %s: %s", image.id, e)
            self.notifications.error("Recognition failed for the selected regions.")
            return False

        replacements = {shape.id: shape for shape in updated or []}
        merged = [replacements.get(a.id, a) for a in image.annotations]
        existing_ids = set(image.annotation_ids)
        new_shapes = [shape for shape in updated or [] if shape.id not in existing_ids]
        self.commit(image, merged + new_shapes)
        return True

    def run_inference(self) -> Optional[InferenceResult]:
        """Run the enabled stages on the active image"""
        if self.is_blocked:
            return None
        image = self.active_image
        if image is None or not image.id:
            return None
        if image.is_label:
            self.notifications.info(VALIDATED_PAGE_MESSAGE)
            return None
        if not self.has_selected_model():
            self.notifications.warning(NO_MODEL_MESSAGE)
            return None

        try:
            with self.blocking.blocking("Running inference..."):
                result = self.pipeline.run_single(image, self.model_selection)
        except (ApiError, ValueError) as e:
            logger.error("Error running inference on image %s: %s", image.id, e)
            self.notifications.error("Inference failed for this page.")
            return None

        self.commit(self.store.get_image(image.id), result.shapes)
        return result

    def _run_bulk(
        self,
        targets: List[ImageRecord],
        message: str,
        on_event: Optional[Callable[[BulkEvent], None]] = None,
    ) -> BulkSummary:
        def handle_event(event: BulkEvent):
            if event.stage is BulkStage.DONE and event.result is not None:
                self.commit(self.store.get_image(event.image_id), event.result.shapes)
            if on_event is not None:
                on_event(event)

        with self.blocking.blocking(message):
            return self.pipeline.run_bulk(targets, self.model_selection, on_event=handle_event)

    def run_inference_for_images(
        self,
        image_ids: Iterable[int],
        on_event: Optional[Callable[[BulkEvent], None]] = None,
    ) -> Optional[BulkSummary]:
        """
        Run inference over chosen pages, one after another

        Validated pages are skipped and counted in the summary.
        """
        if not self.is_ocr_project or self.is_blocked:
            return None
        if not self.has_selected_model():
            self.notifications.warning(NO_MODEL_MESSAGE)
            return None
        wanted = set(image_ids)
        if not wanted:
            return None

        targets = [img for img in self.store.images if img.id in wanted and img.id]
        runnable = [img for img in targets if not img.is_label]
        if not runnable:
            self.notifications.info("Selected pages are validated. Unvalidate to run inference.")
            return None

        summary = self._run_bulk(targets, f"Running inference on {len(runnable)} page(s)...", on_event)
        self.notifications.notify(summary.message, Severity(summary.severity))
        return summary

    def run_bulk_inference(
        self, on_event: Optional[Callable[[BulkEvent], None]] = None
    ) -> Optional[BulkSummary]:
        """Run inference over every unvalidated page of the project"""
        if not self.is_ocr_project or self.is_blocked:
            return None
        targets = [img for img in self.store.images if img.id and not img.is_label]
        if not targets:
            self.notifications.info("All pages are validated. Unvalidate pages to run inference.")
            return None
        if not self.has_selected_model():
            self.notifications.warning(NO_MODEL_MESSAGE)
            return None

        summary = self._run_bulk(targets, "Running inference on unvalidated pages...", on_event)
        self.notifications.notify(summary.message, Severity(summary.severity))
        return summary

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def set_validation(self, validated: bool) -> bool:
        """Mark the active page as validated (locked) or not"""
        if self.is_blocked:
            return False
        image = self.active_image
        if image is None or not image.id:
            return False
        try:
            payload = self.client.set_validation(image.id, validated)
        except ApiError as e:
            logger.error("Error updating validation state of image %s: %s", image.id, e)
            self.notifications.error("Failed to update validation state.")
            return False

        self.handle_image_updated(payload or {"id": image.id, "is_label": validated})
        self.notifications.success(
            "Page marked as validated." if validated else "Page marked as unvalidated."
        )
        return True

    def set_validation_for_images(self, image_ids: Iterable[int], validated: bool) -> int:
        """
        Set the validation flag on several pages

        Returns:
            Number of pages updated
        """
        if not self.is_ocr_project or self.is_blocked:
            return 0
        wanted = set(image_ids)
        if not wanted:
            return 0
        targets = [img for img in self.store.images if img.id in wanted and img.is_label != validated]
        if not targets:
            self.notifications.info(
                "Selected pages are already validated."
                if validated else "Selected pages are already unvalidated."
            )
            return 0

        updated = 0
        failed = 0
        for image in targets:
            try:
                payload = self.client.set_validation(image.id, validated)
            except ApiError as e:
                logger.error("Error updating validation state of image %s: %s", image.id, e)
                failed += 1
                continue
            self.handle_image_updated(payload or {"id": image.id, "is_label": validated})
            updated += 1

        if failed:
            self.notifications.error(f"{failed} page(s) failed to update validation.")
        else:
            self.notifications.success(
                f"Validated {updated} page(s)." if validated else f"Unvalidated {updated} page(s)."
            )
        return updated

    # ------------------------------------------------------------------
    # Models
    # ------------------------------------------------------------------

    def load_models(self) -> bool:
        """
        Configure the backend's OCR models for this project

        Uses the project's saved model configuration when there is one, the
        configured defaults otherwise. Runs once per opened project.
        """
        if not self.is_ocr_project or self.models_loaded:
            return False

        with self.blocking.blocking("Loading OCR models..."):
            if self.project_id is not None:
                try:
                    self.model_config = self.client.get_model_config(self.project_id)
                except ApiError as e:
                    self.model_config = None
                    logger.error("Failed to load saved OCR model config: %s", e)

            saved = self.model_config or {}
            detect_model = (saved.get("det") or {}).get("model") or self.settings.detect_model
            recognize_model = (saved.get("rec") or {}).get("model") or self.settings.recognize_model

            try:
                self.client.configure_models(self.project_id, detect_model, recognize_model)
            except ApiError as e:
                logger.error("Error loading OCR models: %s", e)
                self.notifications.error("Failed to load OCR models.")
                return False

        self.models_loaded = True
        logger.info("Configured OCR models %s / %s", detect_model, recognize_model)
        return True
