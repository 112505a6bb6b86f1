"""
Annotation Store

In-memory holder of the images of the active project and, per image, the
ordered list of OCR annotations. Every other component reads and mutates the
annotation lists through this store.
"""
from typing import Dict, Iterable, List, Optional

from .models import Annotation, ImageRecord, clone_annotations


class AnnotationStore:
    """
    Ordered mapping of image id -> ImageRecord

    Annotation lists handed in or out are copied, so callers can never alias
    the store's own lists.
    """

    def __init__(self, images: Optional[Iterable[ImageRecord]] = None):
        self._images: Dict[int, ImageRecord] = {}
        for image in images or []:
            self._images[image.id] = image

    def __contains__(self, image_id: int) -> bool:
        return image_id in self._images

    def __len__(self) -> int:
        return len(self._images)

    @property
    def images(self) -> List[ImageRecord]:
        """Images in insertion order"""
        return list(self._images.values())

    @property
    def image_ids(self) -> List[int]:
        return list(self._images.keys())

    def get_image(self, image_id: int) -> Optional[ImageRecord]:
        """Get an image by ID"""
        return self._images.get(image_id)

    def add_image(self, image: ImageRecord) -> ImageRecord:
        """Add an image; a freshly uploaded image starts with an empty list"""
        self._images[image.id] = image
        return image

    def remove_image(self, image_id: int) -> bool:
        """Remove an image by ID. Returns True if found and removed."""
        return self._images.pop(image_id, None) is not None

    def set_annotations(self, image_id: int, annotations: List[Annotation]) -> bool:
        """
        Replace an image's annotation list

        Returns:
            False if the image is unknown
        """
        image = self._images.get(image_id)
        if image is None:
            return False
        image.annotations = clone_annotations(annotations)
        return True

    def clear(self) -> None:
        self._images.clear()
