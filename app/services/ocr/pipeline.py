"""
Staged OCR inference

Runs detect -> recognize -> classify against the backend for one image, or
for many images strictly one after another. In bulk mode a failing image is
marked as errored and the run moves on to the next image.
"""
import logging
from typing import Callable, Dict, Generator, Iterable, List, Optional

from app.services.annotation.models import Annotation, ImageRecord, clone_annotations
from .client import LabelingApiClient
from .exceptions import NoModelSelectedError
from .types import (
    BulkEvent,
    BulkItemStatus,
    BulkStage,
    BulkSummary,
    InferenceResult,
    ModelSelection,
    ProjectType,
)

logger = logging.getLogger(__name__)

NO_MODEL_SELECTED_MESSAGE = "Select at least one model before running inference."
BULK_ERROR_MESSAGE = "inference failed"


class InferencePipeline:
    """
    Orchestrates the staged inference calls

    Args:
        client: REST client for the project's image endpoints
        project_type: Project variant; classification only runs for OCR_KIE
        categories: Returns the category names sent to the KIE classifier
    """

    def __init__(
        self,
        client: LabelingApiClient,
        project_type: ProjectType = ProjectType.OCR,
        categories: Optional[Callable[[], List[str]]] = None,
    ):
        self.client = client
        self.project_type = ProjectType(project_type)
        self._categories = categories or (lambda: [])
        self.statuses: Dict[int, BulkItemStatus] = {}
        self.is_running = False

    def has_selected_model(self, selection: ModelSelection) -> bool:
        return selection.has_selected_model(self.project_type)

    def check_selection(self, selection: ModelSelection) -> None:
        """Raise NoModelSelectedError if no applicable stage is enabled"""
        if not self.has_selected_model(selection):
            raise NoModelSelectedError(NO_MODEL_SELECTED_MESSAGE)

    def _should_classify(self, selection: ModelSelection, shapes: List[Annotation]) -> bool:
        return self.project_type.is_kie and selection.classify and len(shapes) > 0

    def iter_stages(
        self, image: ImageRecord, selection: ModelSelection
    ) -> Generator[BulkStage, None, InferenceResult]:
        """
        Run the enabled stages for one image

        Yields the stage about to run before each remote call and returns the
        InferenceResult. Each stage takes the previous stage's shapes as input;
        without detection the image's current annotations are the input.
        """
        if not image.id:
            raise ValueError("Image is missing an id.")

        shapes = clone_annotations(image.annotations)
        categories: Optional[List[str]] = None

        if selection.detect:
            yield BulkStage.DETECTING
            shapes = self.client.detect_regions(
                image.id,
                model_name=selection.detect_model,
                tolerance_ratio=selection.tolerance_ratio,
            )

        if selection.recognize:
            yield BulkStage.RECOGNIZING
            recognized, categories = self.client.recognize_text(image.id, shapes)
            if recognized is not None:
                shapes = recognized

        if self._should_classify(selection, shapes):
            yield BulkStage.CLASSIFYING
            classified, kie_categories = self.client.classify_kie(image.id, shapes, self._categories())
            if classified is not None:
                shapes = classified
            if kie_categories is not None:
                categories = kie_categories

        return InferenceResult(shapes=shapes, categories=categories)

    def run_single(
        self,
        image: ImageRecord,
        selection: ModelSelection,
        on_stage: Optional[Callable[[BulkStage], None]] = None,
    ) -> InferenceResult:
        """
        Run staged inference on one image

        Args:
            image: Image to process (callers exclude validated images)
            selection: Enabled stages
            on_stage: Called with each stage before it runs

        Returns:
            InferenceResult with the final shapes

        Raises:
            NoModelSelectedError: Before any network call, if nothing applies
            ApiError: If a stage fails
        """
        self.check_selection(selection)
        stages = self.iter_stages(image, selection)
        while True:
            try:
                stage = next(stages)
            except StopIteration as stop:
                return stop.value
            if on_stage is not None:
                on_stage(stage)

    def _tracked_stages(
        self, image: ImageRecord, selection: ModelSelection
    ) -> Generator[BulkEvent, None, InferenceResult]:
        stages = self.iter_stages(image, selection)
        while True:
            try:
                stage = next(stages)
            except StopIteration as stop:
                return stop.value
            self.statuses[image.id] = BulkItemStatus(stage=stage)
            yield BulkEvent(image_id=image.id, stage=stage)

    def iter_bulk(
        self, images: Iterable[ImageRecord], selection: ModelSelection
    ) -> Generator[BulkEvent, None, BulkSummary]:
        """
        Staged inference over several images, one step per iteration

        Images are processed in the given order, one at a time. Validated
        images are skipped. A failing image gets an ERROR status and the run
        continues with the next image.

        Yields:
            BulkEvent for every status change; the DONE event carries the
            InferenceResult

        Returns:
            BulkSummary (the generator's return value)

        Raises:
            NoModelSelectedError: Before anything runs, if nothing applies
        """
        self.check_selection(selection)

        images = list(images)
        runnable = [img for img in images if img.id and not img.is_label]
        summary = BulkSummary(skipped=sum(1 for img in images if img.id and img.is_label))

        self.statuses = {img.id: BulkItemStatus() for img in runnable}
        self.is_running = True
        try:
            for image in runnable:
                try:
                    result = yield from self._tracked_stages(image, selection)
                except Exception as e:
                    logger.error("Bulk inference failed for image %s: %s", image.id, e)
                    summary.failed += 1
                    self.statuses[image.id] = BulkItemStatus(stage=BulkStage.ERROR, error=BULK_ERROR_MESSAGE)
                    yield BulkEvent(image_id=image.id, stage=BulkStage.ERROR, error=str(e))
                    continue

                summary.succeeded += 1
                self.statuses[image.id] = BulkItemStatus(stage=BulkStage.DONE)
                yield BulkEvent(image_id=image.id, stage=BulkStage.DONE, result=result)
        finally:
            self.is_running = False

        logger.info(
            "Bulk inference finished: %d succeeded, %d skipped, %d failed",
            summary.succeeded, summary.skipped, summary.failed,
        )
        return summary

    def run_bulk(
        self,
        images: Iterable[ImageRecord],
        selection: ModelSelection,
        on_event: Optional[Callable[[BulkEvent], None]] = None,
    ) -> BulkSummary:
        """Drive iter_bulk() to completion, passing every event to on_event"""
        events = self.iter_bulk(images, selection)
        while True:
            try:
                event = next(events)
            except StopIteration as stop:
                return stop.value
            if on_event is not None:
                on_event(event)

    def reset(self) -> None:
        self.statuses = {}
        self.is_running = False
