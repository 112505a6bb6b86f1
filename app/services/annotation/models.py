"""
Annotation Data Models

Dataclasses for OCR annotations and the images they belong to, plus the
value helpers (clone, structural equality, payload normalization) shared by
the history, sync and inference code.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Literal, Dict, Any, Iterable


ShapeType = Literal["rect", "polygon"]
DEFAULT_SHAPE_TYPE = "rect"


@dataclass
class Point:
    """2D point with x, y coordinates"""
    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "Point":
        return cls(x=data["x"], y=data["y"])


@dataclass
class Annotation:
    """
    One OCR region on an image

    Attributes:
        id: Opaque identifier assigned by the remote store
        type: Shape type ("rect" or "polygon")
        points: Ordered list of points defining the shape
        text: Recognized or typed transcription
        category: Name of the assigned category, if any
    """
    id: str
    type: ShapeType = DEFAULT_SHAPE_TYPE
    points: List[Point] = field(default_factory=list)
    text: str = ""
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "points": [p.to_dict() for p in self.points],
            "text": self.text,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Annotation":
        """
        Build an annotation from a remote payload

        Remote shapes are not always well formed: ids may arrive as integers,
        the shape type may be missing or sent as ``shape_type``.
        """
        raw_id = data.get("id")
        return cls(
            id=raw_id if isinstance(raw_id, str) else str(raw_id if raw_id is not None else ""),
            type=data.get("type") or data.get("shape_type") or DEFAULT_SHAPE_TYPE,
            points=[Point.from_dict(p) for p in data.get("points") or []],
            text=data.get("text") or "",
            category=data.get("category"),
        )

    def copy(self) -> "Annotation":
        """Deep value copy (points are copied, not shared)"""
        return Annotation(
            id=self.id,
            type=self.type,
            points=[Point(p.x, p.y) for p in self.points],
            text=self.text,
            category=self.category,
        )


@dataclass
class ImageRecord:
    """
    An image of the active project with its OCR annotations

    Attributes:
        id: Remote image id
        image: URL of the full-size image
        original_filename: Name of the uploaded file
        is_label: Whether the page is validated (locked against inference)
        annotations: Ordered list of annotations
    """
    id: int
    image: str = ""
    original_filename: str = ""
    is_label: bool = False
    annotations: List[Annotation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "image": self.image,
            "original_filename": self.original_filename,
            "is_label": self.is_label,
            "ocr_annotations": annotations_to_dicts(self.annotations),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageRecord":
        return cls(
            id=data["id"],
            image=data.get("image") or "",
            original_filename=data.get("original_filename") or "",
            is_label=bool(data.get("is_label", False)),
            annotations=normalize_annotations(data.get("ocr_annotations")),
        )

    def get_annotation(self, annotation_id: str) -> Optional[Annotation]:
        """Get an annotation by ID"""
        for annotation in self.annotations:
            if annotation.id == annotation_id:
                return annotation
        return None

    @property
    def annotation_ids(self) -> List[str]:
        return [a.id for a in self.annotations]


def normalize_annotations(raw: Optional[Iterable[Any]]) -> List[Annotation]:
    """Convert a remote shape list (dicts or Annotations) to Annotation objects"""
    annotations = []
    for item in raw or []:
        if isinstance(item, Annotation):
            annotations.append(item.copy())
        else:
            annotations.append(Annotation.from_dict(item))
    return annotations


def annotations_to_dicts(annotations: Iterable[Annotation]) -> List[Dict[str, Any]]:
    return [a.to_dict() for a in annotations]


def clone_annotations(annotations: Optional[Iterable[Annotation]] = None) -> List[Annotation]:
    """
    Deep-copy an annotation list

    Snapshots taken for history must not alias the live list, so both the
    annotation objects and their point lists are copied.
    """
    return [a.copy() for a in annotations or []]


def annotations_equal(
    a: Optional[List[Annotation]] = None,
    b: Optional[List[Annotation]] = None,
) -> bool:
    """
    Structural equality of two annotation lists, ignoring order

    Both lists are sorted by id, then id, type, text, category and points
    (positionally) are compared.
    """
    a = a or []
    b = b or []
    if len(a) != len(b):
        return False

    sorted_a = sorted(a, key=lambda ann: ann.id)
    sorted_b = sorted(b, key=lambda ann: ann.id)

    for ann, other in zip(sorted_a, sorted_b):
        if (
            ann.id != other.id
            or ann.type != other.type
            or ann.text != other.text
            or ann.category != other.category
        ):
            return False
        if len(ann.points) != len(other.points):
            return False
        for pt, other_pt in zip(ann.points, other.points):
            if pt.x != other_pt.x or pt.y != other_pt.y:
                return False
    return True
