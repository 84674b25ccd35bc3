"""Try-On Studio: layered virtual try-on over an external image service."""

from .catalogs import DEFAULT_BACKGROUNDS, POSE_INSTRUCTIONS, Wardrobe
from .config import StudioConfig, load_config
from .errors import StorageError, StudioError, SynthesisError
from .manager import OutfitHistoryManager

__all__ = [
    "DEFAULT_BACKGROUNDS",
    "POSE_INSTRUCTIONS",
    "Wardrobe",
    "StudioConfig",
    "load_config",
    "StudioError",
    "StorageError",
    "SynthesisError",
    "OutfitHistoryManager",
]
