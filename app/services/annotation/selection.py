"""
Selection of annotations on the active image
"""
from typing import List, Optional, Iterable

from .models import Annotation


class SelectionManager:
    """
    Ids of the annotations currently selected, scoped to one image

    The selection is always a subset of the ids present in that image's
    current annotation list: callers pass every new list to reconcile().
    """

    def __init__(self):
        self.image_id: Optional[int] = None
        self._ids: List[str] = []

    @property
    def ids(self) -> List[str]:
        return list(self._ids)

    def __contains__(self, annotation_id: str) -> bool:
        return annotation_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def set_active_image(self, image_id: Optional[int]) -> None:
        """Switch the scope to another image; the selection does not carry over"""
        if image_id != self.image_id:
            self._ids = []
        self.image_id = image_id

    def select(self, ids: Iterable[str]) -> None:
        """Replace the selection"""
        # Keep first occurrence order, drop duplicates
        self._ids = list(dict.fromkeys(ids))

    def clear(self) -> None:
        self._ids = []

    def reconcile(self, annotations: Iterable[Annotation]) -> List[str]:
        """
        Intersect the selection with the ids that survived a list change

        Ids no longer present are dropped silently.

        Returns:
            The ids that were dropped
        """
        allowed = {a.id for a in annotations}
        dropped = [i for i in self._ids if i not in allowed]
        if dropped:
            self._ids = [i for i in self._ids if i in allowed]
        return dropped

    def selected_annotations(self, annotations: Iterable[Annotation]) -> List[Annotation]:
        """Annotations of the given list that are selected, in list order"""
        selected = set(self._ids)
        return [a for a in annotations if a.id in selected]
