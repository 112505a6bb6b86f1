"""
Application state management for the labeling app

Contains the state that persists across Streamlit reruns. The labeling
session itself lives in st.session_state so edits, history and bulk
statuses survive every rerun of the script.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from app import config
from app.services.annotation.session import LabelingSession
from app.services.logging_utils import setup_logging
from app.services.ocr.client import LabelingApiClient


@dataclass
class AnnotationState:
    """Page state for the labeling tab"""
    project_id: Optional[int] = None
    project_type: str = "ocr"
    image_width: int = config.DEFAULT_IMAGE_WIDTH
    bulk_selection: List[int] = field(default_factory=list)
    # Ids chosen in the region multiselect on the last rerun
    last_selection: List[str] = field(default_factory=list)


def create_session(settings: Optional[config.LabelingSettings] = None) -> LabelingSession:
    """Build a LabelingSession talking to the configured backend"""
    settings = settings or config.get_settings()
    client = LabelingApiClient(
        settings.api_base_url,
        timeout=settings.api_timeout,
        token=settings.api_token,
    )
    return LabelingSession(client, settings=settings)


def init_session_state():
    """Initialize session state if not already done"""
    import streamlit as st

    if "settings" not in st.session_state:
        settings = config.get_settings()
        setup_logging(settings.log_dir, level=settings.log_level)
        st.session_state.settings = settings

    if "annotation_state" not in st.session_state:
        st.session_state.annotation_state = AnnotationState()

    if "labeling_session" not in st.session_state:
        st.session_state.labeling_session = create_session(st.session_state.settings)
