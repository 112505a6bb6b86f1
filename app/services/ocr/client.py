"""
REST client for the labeling backend

Wraps the per-image OCR endpoints (detection, recognition, KIE
classification, annotation upsert/delete, validation flag) and the model
configuration endpoints. Every failure surfaces as ApiError.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from app.services.annotation.models import (
    Annotation,
    annotations_to_dicts,
    normalize_annotations,
)

from .exceptions import ApiError

logger = logging.getLogger(__name__)

OCR_ENDPOINT_BASE = "ocr-images"
IMAGE_ENDPOINT_BASE = "images"


class LabelingApiClient:
    """
    Thin requests-based client for one endpoint base

    Args:
        base_url: API root, e.g. "http://localhost:8002/api/"
        endpoint_base: Image endpoint prefix ("ocr-images" for OCR projects)
        timeout: Per-request timeout in seconds
        token: Optional bearer token sent as Authorization header
        session: Optional requests.Session (tests pass a mock)
    """

    def __init__(
        self,
        base_url: str,
        endpoint_base: str = OCR_ENDPOINT_BASE,
        timeout: float = 60.0,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.endpoint_base = endpoint_base.strip("/")
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    def _url(self, *parts: Any) -> str:
        path = "/".join(str(p).strip("/") for p in (self.endpoint_base,) + parts)
        return f"{self.base_url}/{path}/"

    def _request(self, method: str, url: str, **kwargs) -> Any:
        """
        Send a request and decode the JSON body

        Returns:
            Decoded JSON, or None for an empty body

        Raises:
            ApiError: On connection errors, timeouts, non-2xx responses or
                an undecodable body
        """
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise ApiError(f"{method} {url} failed with status {status}", status_code=status) from e
        except requests.RequestException as e:
            raise ApiError(f"{method} {url} failed: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"{method} {url} returned invalid JSON", status_code=response.status_code) from e

    def _json_object(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """Like _request, but the body must be a JSON object (empty body -> {})"""
        data = self._request(method, url, **kwargs)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ApiError(f"{method} {url} returned {type(data).__name__}, expected an object")
        return data

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def detect_regions(
        self,
        image_id: int,
        model_name: Optional[str] = None,
        tolerance_ratio: Optional[float] = None,
    ) -> List[Annotation]:
        """Run text detection; returns the detected shapes"""
        payload: Dict[str, Any] = {}
        if model_name:
            payload["model_name"] = model_name
        if tolerance_ratio is not None:
            payload["tolerance_ratio"] = tolerance_ratio
        data = self._json_object("POST", self._url(image_id, "detect_regions"), json=payload)
        return self._parse_shapes(data.get("shapes"))

    def recognize_text(
        self, image_id: int, shapes: List[Annotation]
    ) -> Tuple[Optional[List[Annotation]], Optional[List[str]]]:
        """
        Run text recognition over the given shapes

        Returns:
            (shapes, categories); either is None when absent from the response
        """
        data = self._json_object(
            "POST",
            self._url(image_id, "recognize_text"),
            json={"shapes": annotations_to_dicts(shapes)},
        )
        return self._shapes_and_categories(data)

    def classify_kie(
        self, image_id: int, shapes: List[Annotation], categories: List[str]
    ) -> Tuple[Optional[List[Annotation]], Optional[List[str]]]:
        """Run key-information classification over the given shapes"""
        data = self._json_object(
            "POST",
            self._url(image_id, "classify_kie"),
            json={"shapes": annotations_to_dicts(shapes), "categories": list(categories)},
        )
        return self._shapes_and_categories(data)

    @staticmethod
    def _parse_shapes(shapes: Any) -> List[Annotation]:
        try:
            return normalize_annotations(shapes)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ApiError(f"Malformed shapes in response: {e}") from e

    @staticmethod
    def _parse_categories(categories: Any) -> List[str]:
        if not isinstance(categories, (list, tuple)):
            raise ApiError(f"Malformed categories in response: {categories!r}")
        return [str(c) for c in categories]

    @classmethod
    def _shapes_and_categories(cls, data: Dict[str, Any]) -> Tuple[Optional[List[Annotation]], Optional[List[str]]]:
        shapes = data.get("shapes")
        categories = data.get("categories")
        # An empty list is a real answer; only a missing key means "no change"
        return (
            cls._parse_shapes(shapes) if shapes is not None else None,
            cls._parse_categories(categories) if categories is not None else None,
        )

    # ------------------------------------------------------------------
    # Annotation store
    # ------------------------------------------------------------------

    def upsert_annotations(self, image_id: int, shapes: List[Annotation]) -> None:
        """Send the full annotation list; the backend treats it as authoritative"""
        self._request(
            "POST",
            self._url(image_id, "ocr_annotations"),
            json={"shapes": annotations_to_dicts(shapes)},
        )

    def delete_annotations(self, image_id: int, ids: List[str]) -> None:
        """
        Delete annotations by id

        An empty id list asks the backend to delete every annotation of the
        image.
        """
        self._request("DELETE", self._url(image_id, "ocr_annotations"), json={"ids": list(ids)})

    def set_validation(self, image_id: int, is_label: bool) -> Optional[Dict[str, Any]]:
        """Set the validated flag; returns the updated image payload if sent"""
        data = self._json_object("PATCH", self._url(image_id), json={"is_label": is_label})
        return data or None

    # ------------------------------------------------------------------
    # Model configuration
    # ------------------------------------------------------------------

    def get_model_config(self, project_id: int) -> Optional[Dict[str, Any]]:
        """Saved model configuration of a project, or None"""
        data = self._json_object("GET", self._url("model_config"), params={"project_id": project_id})
        config = data.get("config")
        return config if isinstance(config, dict) else None

    def configure_models(
        self,
        project_id: int,
        detect_model: str,
        recognize_model: str,
        classify_model: Optional[str] = None,
    ) -> None:
        payload: Dict[str, Any] = {
            "project_id": project_id,
            "detect_model": detect_model,
            "recognize_model": recognize_model,
        }
        if classify_model:
            payload["classify_model"] = classify_model
        self._request("POST", self._url("configure_models"), json=payload)
