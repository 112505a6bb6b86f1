"""
Tests for HistoryManager
"""
import pytest

from app.services.annotation.history import HistoryManager
from app.services.annotation.models import annotations_equal, clone_annotations
from app.services.annotation.notifications import NotificationCenter
from app.services.annotation.store import AnnotationStore
from app.services.annotation.sync import SyncEngine


class Harness:
    """Store, sync engine and history wired the way the session wires them"""

    def __init__(self, client, image):
        self.store = AnnotationStore([image])
        self.sync = SyncEngine(client, self.local_apply, NotificationCenter())
        self.history = HistoryManager(self.sync, self.store.get_image)

    def local_apply(self, image_id, annotations, replaying):
        image = self.store.get_image(image_id)
        if not replaying:
            self.history.record(image_id, image.annotations, annotations)
        self.store.set_annotations(image_id, annotations)

    def edit(self, annotations):
        return self.sync.apply(self.store.get_image(1), annotations)

    @property
    def current(self):
        return self.store.get_image(1).annotations


@pytest.fixture
def harness(mock_client, sample_image):
    return Harness(mock_client, sample_image)


class TestRecord:
    """Tests for HistoryManager.record()"""

    def test_record_pushes_previous(self, harness, sample_annotations):
        changed = clone_annotations(sample_annotations)
        changed[0].text = "edited"

        assert harness.history.record(1, sample_annotations, changed) is True
        entry = harness.history.entry(1)
        assert len(entry.past) == 1
        assert annotations_equal(entry.past[0], sample_annotations)

    def test_equal_lists_not_recorded(self, harness, sample_annotations):
        """Test structurally equal lists are not recorded, whatever their order"""
        reordered = list(reversed(clone_annotations(sample_annotations)))

        assert harness.history.record(1, sample_annotations, reordered) is False
        assert harness.history.can_undo(1) is False

    def test_consecutive_duplicates_collapsed(self, harness, sample_annotations, annotation_factory):
        """Test the same snapshot is not pushed twice in a row"""
        harness.history.record(1, sample_annotations, [annotation_factory("x")])
        harness.history.record(1, sample_annotations, [annotation_factory("y")])

        assert len(harness.history.entry(1).past) == 1

    def test_snapshot_is_deep_copy(self, harness, sample_annotations, annotation_factory):
        harness.history.record(1, sample_annotations, [annotation_factory("x")])
        sample_annotations[0].text = "mutated later"

        assert harness.history.entry(1).past[0][0].text == "alpha"

    def test_new_edit_clears_future(self, harness, annotation_factory):
        harness.edit([annotation_factory("x")])
        harness.history.undo(1)
        assert harness.history.can_redo(1)

        harness.edit([annotation_factory("y")])

        assert harness.history.can_redo(1) is False

    def test_entries_created_lazily(self, harness):
        assert harness.history.can_undo(99) is False
        assert harness.history.entry(99).past == []


class TestUndoRedo:
    """Tests for HistoryManager.undo() and redo()"""

    def test_undo_restores_previous(self, harness, sample_annotations, annotation_factory):
        harness.edit([annotation_factory("x")])

        assert harness.history.undo(1) is True
        assert annotations_equal(harness.current, sample_annotations)

    def test_redo_after_undo_restores(self, harness, annotation_factory):
        """Test redo(undo(S)) == S"""
        edited = [annotation_factory("x", text="after")]
        harness.edit(edited)
        harness.history.undo(1)

        assert harness.history.redo(1) is True
        assert annotations_equal(harness.current, edited)

    def test_replay_not_recorded(self, harness, annotation_factory):
        """Test an undo does not push a new snapshot onto the undo stack"""
        harness.edit([annotation_factory("x")])
        harness.history.undo(1)

        entry = harness.history.entry(1)
        assert entry.past == []
        assert len(entry.future) == 1

    def test_undo_syncs_remote(self, harness, mock_client, annotation_factory):
        """Test the restored list is pushed like any other edit"""
        harness.edit([annotation_factory("x")])
        mock_client.reset_mock()

        harness.history.undo(1)

        mock_client.delete_annotations.assert_called_once_with(1, ["x"])
        upserted = mock_client.upsert_annotations.call_args[0][1]
        assert [a.id for a in upserted] == ["a", "b"]

    def test_undo_empty_stack(self, harness, mock_client):
        assert harness.history.undo(1) is False
        assert harness.history.redo(1) is False
        assert mock_client.mock_calls == []

    def test_unknown_image(self, harness):
        assert harness.history.undo(42) is False

    def test_reentrant_undo_rejected(self, harness, mock_client, annotation_factory):
        """Test a second undo while one is being applied is dropped"""
        harness.edit([annotation_factory("x")])
        harness.edit([annotation_factory("y")])
        nested = []
        mock_client.upsert_annotations.side_effect = lambda *args: nested.append(harness.history.undo(1))

        assert harness.history.undo(1) is True
        assert nested == [False]
        assert len(harness.history.entry(1).past) == 1

    def test_guard_released_after_failed_sync(self, harness, mock_client, annotation_factory):
        """Test a failing remote push does not leave the history locked"""
        from app.services.ocr.exceptions import ApiError

        harness.edit([annotation_factory("x")])
        harness.edit([annotation_factory("y")])
        mock_client.upsert_annotations.side_effect = ApiError("down")

        assert harness.history.undo(1) is True
        assert harness.history.is_replaying is False
        assert harness.history.undo(1) is True

    def test_sequence_walks_back_and_forth(self, harness, sample_annotations, annotation_factory):
        first = [annotation_factory("x")]
        second = [annotation_factory("x"), annotation_factory("y")]
        harness.edit(first)
        harness.edit(second)

        harness.history.undo(1)
        assert annotations_equal(harness.current, first)
        harness.history.undo(1)
        assert annotations_equal(harness.current, sample_annotations)
        harness.history.redo(1)
        harness.history.redo(1)
        assert annotations_equal(harness.current, second)


class TestClear:
    """Tests for HistoryManager.clear()"""

    def test_clear_one_image(self, harness, annotation_factory):
        harness.edit([annotation_factory("x")])
        harness.history.entry(2).past.append([])

        harness.history.clear(1)

        assert harness.history.can_undo(1) is False
        assert harness.history.can_undo(2) is True

    def test_clear_all(self, harness, annotation_factory):
        harness.edit([annotation_factory("x")])
        harness.history.clear()

        assert harness.history.can_undo(1) is False
