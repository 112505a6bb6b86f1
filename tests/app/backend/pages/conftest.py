"""
Shared pytest fixtures for backend page tests
"""
import pytest
from unittest.mock import MagicMock, Mock

from app.backend.state import AnnotationState
from app.services.annotation.session import LabelingSession


def _columns(layout):
    count = layout if isinstance(layout, int) else len(layout)
    return [MagicMock() for _ in range(count)]


@pytest.fixture
def mock_streamlit():
    """Mock Streamlit module for UI testing."""
    mock_st = MagicMock()

    # Mock sidebar
    mock_st.sidebar = MagicMock()
    mock_st.sidebar.file_uploader = MagicMock(return_value=None)
    mock_st.sidebar.button = MagicMock(return_value=False)
    mock_st.sidebar.checkbox = MagicMock(side_effect=lambda label, value=False, **kwargs: value)
    mock_st.sidebar.multiselect = MagicMock(side_effect=lambda label, options, default=(), **kwargs: list(default))
    mock_st.sidebar.text_area = MagicMock(side_effect=lambda label, value="", **kwargs: value)
    mock_st.sidebar.selectbox = MagicMock(side_effect=lambda label, options, **kwargs: options[0])
    mock_st.sidebar.columns = MagicMock(side_effect=_columns)

    # Mock main UI elements
    mock_st.info = MagicMock()
    mock_st.success = MagicMock()
    mock_st.error = MagicMock()
    mock_st.warning = MagicMock()
    mock_st.button = MagicMock(return_value=False)
    mock_st.multiselect = MagicMock(side_effect=lambda label, options, default=(), **kwargs: list(default))
    mock_st.columns = MagicMock(side_effect=_columns)
    mock_st.divider = MagicMock()
    mock_st.markdown = MagicMock()
    mock_st.caption = MagicMock()
    mock_st.image = MagicMock()
    mock_st.dataframe = MagicMock()
    mock_st.rerun = MagicMock()

    # Mock expander context manager
    mock_expander = MagicMock()
    mock_expander.__enter__ = Mock(return_value=mock_st)
    mock_expander.__exit__ = Mock(return_value=None)
    mock_st.expander = MagicMock(return_value=mock_expander)

    mock_st.session_state = MagicMock()

    return mock_st


@pytest.fixture
def annotation_state():
    return AnnotationState()


@pytest.fixture
def page_session(mock_client, sample_annotations):
    """LabelingSession with two pages, the second one validated"""
    session = LabelingSession(mock_client)
    session.open_project(
        7,
        "ocr_kie",
        images=[
            {
                "id": 1,
                "image": "http://testserver/media/page1.png",
                "original_filename": "page1.png",
                "ocr_annotations": [a.to_dict() for a in sample_annotations],
            },
            {"id": 2, "original_filename": "page2.png", "is_label": True},
        ],
        categories=["total", "date"],
    )
    return session
