"""Key-value persistence for saved outfits."""

import re
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from .errors import StorageError
from .models import SavedOutfit


SAVED_OUTFITS_KEY = "virtual-try-on-saved-outfits"

_outfits_adapter = TypeAdapter(list[SavedOutfit])


class KeyValueStore(Protocol):
    """Byte storage that survives restarts. ``save`` raises StorageError."""

    def load(self, key: str) -> bytes | None:
        ...

    def save(self, key: str, data: bytes) -> None:
        ...


class MemoryStore:
    """In-process store, used in tests and when nothing should touch disk."""

    def __init__(self):
        self.data: dict[str, bytes] = {}

    def load(self, key: str) -> bytes | None:
        return self.data.get(key)

    def save(self, key: str, data: bytes) -> None:
        self.data[key] = data


class FileStore:
    """One file per key inside ``directory``."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9._-]", "_", key)
        return self.directory / f"{safe}.json"

    def load(self, key: str) -> bytes | None:
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    def save(self, key: str, data: bytes) -> None:
        path = self.path_for(key)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
        except OSError as e:
            raise StorageError(f"Could not write {path}: {e}") from e


class SavedOutfitStore:
    """The saved-outfit collection, kept as a JSON array under one key."""

    def __init__(self, store: KeyValueStore, key: str = SAVED_OUTFITS_KEY):
        self.store = store
        self.key = key

    def load(self) -> list[SavedOutfit]:
        raw = self.store.load(self.key)
        if not raw:
            return []
        try:
            return _outfits_adapter.validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"Saved outfits are corrupt: {e.error_count()} validation errors") from e

    def save_all(self, outfits: list[SavedOutfit]) -> None:
        """Replace the stored collection with ``outfits``."""
        self.store.save(self.key, _outfits_adapter.dump_json(outfits))

