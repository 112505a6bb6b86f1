"""
OCR inference against the labeling backend
"""
from .exceptions import ApiError, NoModelSelectedError
from .types import (
    ProjectType,
    BulkStage,
    ModelType,
    ModelSelection,
    InferenceResult,
    BulkItemStatus,
    BulkEvent,
    BulkSummary,
)
from .client import LabelingApiClient, OCR_ENDPOINT_BASE, IMAGE_ENDPOINT_BASE
from .pipeline import InferencePipeline

__all__ = [
    "ApiError",
    "NoModelSelectedError",
    "ProjectType",
    "BulkStage",
    "ModelType",
    "ModelSelection",
    "InferenceResult",
    "BulkItemStatus",
    "BulkEvent",
    "BulkSummary",
    "LabelingApiClient",
    "OCR_ENDPOINT_BASE",
    "IMAGE_ENDPOINT_BASE",
    "InferencePipeline",
]
