"""
OCR Labeling Application Package

Contains the Streamlit application organized into:
- config.py: Settings from environment and YAML
- main.py: Main entry point
- backend/state.py: Session state management
- backend/pages/: Page modules
- services/annotation/: Annotation store, history, sync and the labeling session
- services/ocr/: REST client and staged inference
"""


def __getattr__(name):
    """Lazy load the Streamlit entry point so the services import without it."""
    if name == "main":
        from app.main import main
        return main
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["main"]
