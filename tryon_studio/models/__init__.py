"""Data models for the Try-On Studio."""

from .wardrobe import WardrobeItem, Background, SavedOutfit
from .outfit import OutfitLayer, OutfitHistory
from .state import PendingChange, StudioState, StudioView

__all__ = [
    "WardrobeItem",
    "Background",
    "SavedOutfit",
    "OutfitLayer",
    "OutfitHistory",
    "PendingChange",
    "StudioState",
    "StudioView",
]
