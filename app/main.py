"""
OCR Labeling - page-by-page correction of OCR annotations

Main application entry point.
"""
import streamlit as st

from app.backend.state import init_session_state
from app.backend.pages.annotate import render_annotation_page


def main():
    """Main application entry point"""
    st.set_page_config(
        page_title="OCR Labeling",
        page_icon="",
        layout="wide",
    )

    init_session_state()

    st.sidebar.title("OCR Labeling")
    st.sidebar.divider()

    render_annotation_page()


if __name__ == "__main__":
    main()
