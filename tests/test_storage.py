"""Tests for key-value stores and the saved outfit collection."""

import pytest

from tryon_studio.errors import StorageError
from tryon_studio.models import SavedOutfit
from tryon_studio.storage import SAVED_OUTFITS_KEY, FileStore, MemoryStore, SavedOutfitStore


@pytest.fixture
def outfit(shirt):
    return SavedOutfit(id="1", name="Outfit 1", thumbnail_url="data:image/png;base64,AAAA", layers=[None, shirt])


class TestFileStore:

    def test_missing_key_is_none(self, tmp_path):
        assert FileStore(tmp_path).load("nothing") is None

    def test_save_and_load(self, tmp_path):
        store = FileStore(tmp_path / "nested")
        store.save("key", b"payload")

        assert store.load("key") == b"payload"
        assert FileStore(tmp_path / "nested").load("key") == b"payload"

    def test_key_is_made_filesystem_safe(self, tmp_path):
        store = FileStore(tmp_path)
        path = store.path_for("../../etc/passwd")
        assert path.parent == tmp_path

    def test_unwritable_directory_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(StorageError):
            FileStore(blocker).save("key", b"payload")


class TestSavedOutfitStore:

    def test_empty_store_loads_empty_list(self):
        assert SavedOutfitStore(MemoryStore()).load() == []

    def test_save_all_persists(self, tmp_path, outfit, jacket):
        store = SavedOutfitStore(FileStore(tmp_path))
        other = SavedOutfit(id="2", name="Outfit 2", thumbnail_url="T", layers=[None, jacket])

        store.save_all([outfit, other])

        assert SavedOutfitStore(FileStore(tmp_path)).load() == [outfit, other]

    def test_save_all_replaces_collection(self, outfit):
        store = SavedOutfitStore(MemoryStore())
        store.save_all([outfit])

        store.save_all([])

        assert store.load() == []

    def test_save_all_overwrites_corrupt_payload(self, outfit):
        memory = MemoryStore()
        memory.save(SAVED_OUTFITS_KEY, b"not json")

        SavedOutfitStore(memory).save_all([outfit])

        assert SavedOutfitStore(memory).load() == [outfit]

    def test_uses_fixed_key(self, outfit):
        memory = MemoryStore()
        SavedOutfitStore(memory).save_all([outfit])
        assert list(memory.data) == [SAVED_OUTFITS_KEY]

    def test_corrupt_payload_raises_storage_error(self):
        memory = MemoryStore()
        memory.save(SAVED_OUTFITS_KEY, b'{"not": "a list"}')

        with pytest.raises(StorageError):
            SavedOutfitStore(memory).load()
