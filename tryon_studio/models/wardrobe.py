"""Catalog and saved-outfit records."""

from pydantic import BaseModel, ConfigDict, Field


class WardrobeItem(BaseModel):
    """A selectable garment. Identity is the ``id``."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    image_url: str = Field(description="http(s) URL or data URL of the garment image")


class Background(BaseModel):
    """A rendering context the model can be placed in."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    thumbnail_url: str
    prompt: str = Field(description="Scene description handed to the synthesis service")


class SavedOutfit(BaseModel):
    """A persisted garment sequence. Rendered images are not kept."""

    id: str
    name: str
    thumbnail_url: str
    layers: list[WardrobeItem | None] = Field(default_factory=list)

    @property
    def garments(self) -> list[WardrobeItem]:
        """The garments to re-apply, in order, skipping the base layer."""
        return [item for item in self.layers if item is not None]
