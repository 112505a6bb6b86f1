"""
Annotation Page - Correct OCR labels page by page

Features:
- Project loading from an exported project payload
- Image navigation
- Region list with selection, text editing and category assignment
- Undo/redo of annotation edits
- Staged inference (detect, recognize, classify) on one page or in bulk
- Page validation
"""
import io
import json
from typing import Optional

import requests
import streamlit as st
from PIL import Image

from app import config
from app.backend.state import AnnotationState
from app.services.annotation.models import ImageRecord
from app.services.annotation.notifications import Severity
from app.services.annotation.session import LabelingSession
from app.services.ocr.types import BulkEvent, BulkStage, ModelType, ProjectType


def get_annotation_state() -> AnnotationState:
    """Get annotation state from session state"""
    return st.session_state.annotation_state


def get_labeling_session() -> LabelingSession:
    return st.session_state.labeling_session


def render_notifications(session: LabelingSession):
    """Show and drain pending session notifications"""
    for notification in session.notifications.drain():
        show = {
            Severity.SUCCESS: st.success,
            Severity.INFO: st.info,
            Severity.WARNING: st.warning,
            Severity.ERROR: st.error,
        }[notification.severity]
        show(notification.message)


def render_project_sidebar(session: LabelingSession, state: AnnotationState):
    """Render project loading controls in sidebar"""
    st.sidebar.header("Project")

    uploaded = st.sidebar.file_uploader(
        "Project export (JSON)",
        type=["json"],
        key="project_upload",
    )
    if uploaded is not None and st.sidebar.button("Open Project", disabled=session.is_blocked):
        try:
            payload = json.load(uploaded)
        except ValueError as e:
            st.sidebar.error(f"Invalid project file: {e}")
            return

        if not isinstance(payload, dict):
            st.sidebar.error("Invalid project file: expected a JSON object")
            return

        opened = session.open_project(
            payload.get("id"),
            payload.get("type", ProjectType.OCR.value),
            images=payload.get("images") or [],
            categories=payload.get("categories") or [],
        )
        if not opened:
            return

        state.project_id = session.project_id
        state.project_type = session.project_type.value
        state.bulk_selection = []
        state.last_selection = []
        session.load_models()
        st.rerun()

    if session.project_id is not None:
        st.sidebar.divider()
        st.sidebar.markdown(f"**Project {session.project_id}**")
        st.sidebar.caption(f"Type: {session.project_type.value}")
        st.sidebar.caption(f"Images: {len(session.images)}")
        st.sidebar.caption(f"Validated: {sum(1 for img in session.images if img.is_label)}")


def render_model_toggles(session: LabelingSession):
    """Render inference stage toggles in sidebar"""
    st.sidebar.divider()
    st.sidebar.subheader("Models")

    selection = session.model_selection
    models = [ModelType.DETECT, ModelType.RECOGNIZE]
    if session.project_type.is_kie:
        models.append(ModelType.CLASSIFY)

    for model in models:
        current = getattr(selection, model.value)
        enabled = st.sidebar.checkbox(
            model.value.capitalize(),
            value=current,
            key=f"model_{model.value}",
            disabled=session.is_blocked,
        )
        if enabled != current:
            session.toggle_model(model)

    if not session.has_selected_model():
        st.sidebar.warning("Select at least one model before running inference.")


def render_image_navigation(session: LabelingSession):
    """Render image navigation controls"""
    image_ids = [img.id for img in session.images]
    if not image_ids:
        return

    idx = image_ids.index(session.active_image_id) if session.active_image_id in image_ids else 0
    col1, col2, col3 = st.columns([1, 2, 1])

    with col1:
        if st.button("Prev", disabled=idx == 0, key="ann_prev"):
            session.set_active_image(image_ids[idx - 1])
            st.rerun()

    with col2:
        st.markdown(
            f"<div style='text-align: center; padding-top: 5px;'><strong>Image {idx + 1} of {len(image_ids)}</strong></div>",
            unsafe_allow_html=True
        )

    with col3:
        if st.button("Next", disabled=idx >= len(image_ids) - 1, key="ann_next"):
            session.set_active_image(image_ids[idx + 1])
            st.rerun()


def render_edit_toolbar(session: LabelingSession, image: ImageRecord):
    """Render undo/redo, inference and validation buttons"""
    blocked = session.is_blocked
    col1, col2, col3, col4, col5 = st.columns(5)

    with col1:
        if st.button("Undo", disabled=blocked or not session.can_undo, key="ann_undo"):
            session.undo()
            st.rerun()

    with col2:
        if st.button("Redo", disabled=blocked or not session.can_redo, key="ann_redo"):
            session.redo()
            st.rerun()

    with col3:
        if st.button(
            "Run Inference",
            type="primary",
            disabled=blocked or image.is_label,
            key="ann_run_inference",
        ):
            with st.spinner("Running inference..."):
                session.run_inference()
            st.rerun()

    with col4:
        label = "Unvalidate" if image.is_label else "Validate"
        if st.button(label, disabled=blocked, key="ann_validate"):
            session.set_validation(not image.is_label)
            st.rerun()

    with col5:
        if st.button("Clear", disabled=blocked or not image.annotations, key="ann_clear"):
            session.clear_annotations()
            st.rerun()

    if blocked:
        st.caption(session.blocking.message)


def region_label(annotation) -> str:
    """Short label for the region list"""
    text = annotation.text or f"[{annotation.type}]"
    if len(text) > config.REGION_LABEL_LENGTH:
        text = text[:config.REGION_LABEL_LENGTH] + "..."
    if annotation.category:
        text = f"{text} ({annotation.category})"
    return text


def render_region_sidebar(session: LabelingSession, state: AnnotationState, image: ImageRecord):
    """Render region list and editor in sidebar"""
    st.sidebar.divider()
    st.sidebar.header("Regions")

    if not image.annotations:
        st.sidebar.info("No regions yet. Run inference to detect regions.")
        return

    labels = {a.id: region_label(a) for a in image.annotations}
    chosen = st.sidebar.multiselect(
        "Selected regions",
        options=list(labels),
        default=session.selection.ids,
        format_func=lambda annotation_id: labels[annotation_id],
        key=f"regions_{image.id}",
    )
    if chosen != state.last_selection:
        state.last_selection = session.select(chosen)

    selected = session.selected_annotations
    if not selected:
        return

    locked = session.is_blocked or image.is_label

    if len(selected) == 1:
        region = selected[0]
        st.sidebar.subheader("Edit Region")
        new_text = st.sidebar.text_area(
            "Text",
            value=region.text,
            key=f"text_{image.id}_{region.id}",
            height=100,
            disabled=locked,
        )
        if new_text != region.text:
            session.update_annotation_text(region.id, new_text)

    if session.categories:
        category = st.sidebar.selectbox("Category", session.categories, key=f"category_{image.id}")
        if st.sidebar.button("Apply Category", disabled=locked, key="ann_apply_category"):
            session.apply_category_to_selection(category)
            st.rerun()

    col1, col2 = st.sidebar.columns(2)
    with col1:
        if st.button("Recognize", disabled=locked, key="ann_recognize_selected"):
            session.recognize_selected()
            st.rerun()
    with col2:
        if st.button("Delete", type="secondary", disabled=locked, key="ann_delete_selected"):
            session.delete_selected()
            st.rerun()


def load_page_image(url: str, timeout: float = 30.0) -> Optional[Image.Image]:
    """Fetch a page image; None if it cannot be loaded"""
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
        return Image.open(io.BytesIO(response.content))
    except (requests.RequestException, OSError):
        return None


def render_page_image(image: ImageRecord, state: AnnotationState):
    """Render the current page"""
    if not image.image:
        st.info("This page has no image.")
        return

    page = load_page_image(image.image)
    if page is None:
        st.error(f"Image not found: {image.original_filename or image.image}")
        return

    caption = image.original_filename or f"Image {image.id}"
    if image.is_label:
        caption += " (validated)"
    st.image(page, caption=caption, width=state.image_width)


def render_bulk_controls(session: LabelingSession, state: AnnotationState):
    """Render bulk inference and validation over several pages"""
    with st.expander("Bulk Actions", expanded=False):
        options = [img.id for img in session.images]
        names = {img.id: img.original_filename or f"Image {img.id}" for img in session.images}
        state.bulk_selection = st.multiselect(
            "Pages",
            options=options,
            default=[i for i in state.bulk_selection if i in names],
            format_func=lambda image_id: names[image_id],
            key="bulk_pages",
        )

        blocked = session.is_blocked
        col1, col2, col3, col4 = st.columns(4)
        progress = st.empty()

        def show_event(event: BulkEvent):
            progress.text(f"{names.get(event.image_id, event.image_id)}: {event.stage.value}")

        with col1:
            if st.button("Run on Selected", disabled=blocked or not state.bulk_selection, key="bulk_run_selected"):
                session.run_inference_for_images(state.bulk_selection, on_event=show_event)
        with col2:
            if st.button("Run on Unvalidated", disabled=blocked, key="bulk_run_all"):
                session.run_bulk_inference(on_event=show_event)
        with col3:
            if st.button("Validate Selected", disabled=blocked or not state.bulk_selection, key="bulk_validate"):
                session.set_validation_for_images(state.bulk_selection, True)
        with col4:
            if st.button("Unvalidate Selected", disabled=blocked or not state.bulk_selection, key="bulk_unvalidate"):
                session.set_validation_for_images(state.bulk_selection, False)

        render_bulk_status(session)


def render_bulk_status(session: LabelingSession):
    """Render the per-page status table of the last bulk run"""
    if not session.bulk_status:
        return

    names = {img.id: img.original_filename or f"Image {img.id}" for img in session.images}
    rows = []
    for image_id, status in session.bulk_status.items():
        rows.append({
            "Page": names.get(image_id, str(image_id)),
            "Status": status.stage.value,
            "Error": status.error or "",
        })
    st.dataframe(rows, use_container_width=True, hide_index=True)

    done = sum(1 for s in session.bulk_status.values() if s.stage is BulkStage.DONE)
    st.caption(f"{done} of {len(session.bulk_status)} page(s) done")


def render_annotation_page():
    """Main annotation page render function"""
    state = get_annotation_state()
    session = get_labeling_session()

    render_project_sidebar(session, state)

    if session.project_id is None and not session.images:
        st.info("Open a project export to start labeling.")
        render_notifications(session)
        return

    if not session.is_ocr_project:
        st.info("OCR labeling is only available for OCR projects.")
        return

    render_model_toggles(session)

    if not session.images:
        st.info("This project has no images.")
        render_notifications(session)
        return

    render_image_navigation(session)
    st.divider()

    image = session.active_image
    if image is None:
        render_notifications(session)
        return

    render_edit_toolbar(session, image)
    render_region_sidebar(session, state, image)
    render_page_image(image, state)

    st.divider()
    render_bulk_controls(session, state)

    render_notifications(session)
