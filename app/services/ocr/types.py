"""
Type definitions for OCR inference
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from app.services.annotation.models import Annotation


class ProjectType(str, Enum):
    """Project variants known to the backend"""
    SEGMENTATION = "segmentation"
    VIDEO_TRACKING_SEGMENTATION = "video_tracking_segmentation"
    OCR = "ocr"
    OCR_KIE = "ocr_kie"

    @property
    def is_ocr(self) -> bool:
        return self in (ProjectType.OCR, ProjectType.OCR_KIE)

    @property
    def is_kie(self) -> bool:
        return self is ProjectType.OCR_KIE


class BulkStage(str, Enum):
    """Per-image stage of a staged inference run"""
    PENDING = "pending"
    DETECTING = "detecting"
    RECOGNIZING = "recognizing"
    CLASSIFYING = "classifying"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (BulkStage.DONE, BulkStage.ERROR)


class ModelType(str, Enum):
    """Models that can be toggled for inference"""
    DETECT = "detect"
    RECOGNIZE = "recognize"
    CLASSIFY = "classify"


@dataclass
class ModelSelection:
    """Which inference stages to run, plus optional detection parameters"""
    detect: bool = True
    recognize: bool = True
    classify: bool = True
    detect_model: Optional[str] = None
    tolerance_ratio: Optional[float] = None

    def toggle(self, model: ModelType) -> None:
        name = ModelType(model).value
        setattr(self, name, not getattr(self, name))

    def has_selected_model(self, project_type: ProjectType) -> bool:
        """At least one stage applicable to the project is enabled"""
        return (
            self.detect
            or self.recognize
            or (ProjectType(project_type).is_kie and self.classify)
        )


@dataclass
class InferenceResult:
    """Final shapes of a staged run plus any category list the backend derived"""
    shapes: List[Annotation] = field(default_factory=list)
    categories: Optional[List[str]] = None


@dataclass
class BulkItemStatus:
    stage: BulkStage = BulkStage.PENDING
    error: Optional[str] = None


@dataclass
class BulkEvent:
    """One status transition emitted while a bulk run progresses"""
    image_id: int
    stage: BulkStage
    result: Optional[InferenceResult] = None
    error: Optional[str] = None


@dataclass
class BulkSummary:
    """Aggregate outcome of a bulk run"""
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def message(self) -> str:
        parts = []
        if self.succeeded:
            parts.append(f"Inference completed for {self.succeeded} page(s).")
        if self.skipped:
            parts.append(f"{self.skipped} skipped (validated).")
        if self.failed:
            parts.append(f"{self.failed} failed.")
        return " ".join(parts)

    @property
    def severity(self) -> str:
        if self.failed and self.succeeded:
            return "warning"
        if self.failed:
            return "error"
        return "success"
