"""
Exceptions raised by the OCR services
"""
from typing import Optional


class ApiError(RuntimeError):
    """A request to the labeling backend failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NoModelSelectedError(ValueError):
    """Inference was requested without any applicable model enabled"""
