"""
Shared pytest fixtures for the labeling app tests
"""
import pytest
from unittest.mock import MagicMock

from app.services.annotation.models import Annotation, ImageRecord, Point


def make_annotation(annotation_id, text="", category=None, x=0.0, y=0.0, shape_type="rect"):
    """Create a rectangle annotation anchored at (x, y)"""
    return Annotation(
        id=annotation_id,
        type=shape_type,
        points=[
            Point(x=x, y=y),
            Point(x=x + 10, y=y),
            Point(x=x + 10, y=y + 5),
            Point(x=x, y=y + 5),
        ],
        text=text,
        category=category,
    )


@pytest.fixture
def annotation_factory():
    """Factory fixture for annotations"""
    return make_annotation


@pytest.fixture
def sample_annotations():
    """Two annotations on one image"""
    return [
        make_annotation("a", text="alpha"),
        make_annotation("b", text="beta", x=20),
    ]


@pytest.fixture
def sample_image(sample_annotations):
    """Unvalidated image with two annotations"""
    return ImageRecord(
        id=1,
        image="http://testserver/media/page1.png",
        original_filename="page1.png",
        is_label=False,
        annotations=sample_annotations,
    )


@pytest.fixture
def mock_client():
    """
    Mock LabelingApiClient

    Every call succeeds; inference endpoints echo nothing back unless a test
    sets a return value.
    """
    client = MagicMock()
    client.endpoint_base = "ocr-images"
    client.detect_regions.return_value = []
    client.recognize_text.return_value = (None, None)
    client.classify_kie.return_value = (None, None)
    client.upsert_annotations.return_value = None
    client.delete_annotations.return_value = None
    client.set_validation.return_value = None
    client.get_model_config.return_value = None
    client.configure_models.return_value = None
    return client
