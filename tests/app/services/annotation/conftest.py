"""
Shared pytest fixtures for annotation tests
"""
import pytest

from app.services.annotation.session import LabelingSession

PROJECT_ID = 7


def image_payload(image_id, annotations=(), is_label=False):
    """Remote image JSON as the backend sends it"""
    return {
        "id": image_id,
        "image": f"http://testserver/media/page{image_id}.png",
        "original_filename": f"page{image_id}.png",
        "is_label": is_label,
        "ocr_annotations": [a.to_dict() for a in annotations],
    }


@pytest.fixture
def project_images(sample_annotations):
    """Three pages; the third one is validated"""
    return [
        image_payload(1, sample_annotations),
        image_payload(2),
        image_payload(3, is_label=True),
    ]


@pytest.fixture
def session(mock_client, project_images):
    """LabelingSession with an open OCR project, page 1 active"""
    session = LabelingSession(mock_client)
    session.open_project(PROJECT_ID, "ocr", images=project_images)
    return session


@pytest.fixture
def kie_session(mock_client, project_images):
    """LabelingSession with an open OCR/KIE project"""
    session = LabelingSession(mock_client)
    session.open_project(
        PROJECT_ID,
        "ocr_kie",
        images=project_images,
        categories=[{"id": 1, "name": "total"}, {"id": 2, "name": "date"}],
    )
    return session
