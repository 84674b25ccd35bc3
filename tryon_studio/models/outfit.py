"""Outfit layers and the cursor-based history over them."""

from typing import Sequence

from pydantic import BaseModel, Field, model_validator

from .wardrobe import WardrobeItem


class OutfitLayer(BaseModel):
    """One step of the outfit: a garment (``None`` for the bare model) and its pose renders."""

    garment: WardrobeItem | None = None
    pose_images: dict[str, str] = Field(default_factory=dict)

    @property
    def garment_id(self) -> str | None:
        return self.garment.id if self.garment else None

    def representative_image(self, pose_order: Sequence[str]) -> str | None:
        """Image used when the wanted pose has no render yet.

        Picks the pose with the lowest index in ``pose_order``. Keys outside
        the catalog come last, in insertion order.
        """
        rank = {pose: i for i, pose in enumerate(pose_order)}
        ordered = sorted(
            enumerate(self.pose_images),
            key=lambda entry: (rank.get(entry[1], len(rank)), entry[0]),
        )
        if not ordered:
            return None
        return self.pose_images[ordered[0][1]]

    def image_for(self, pose: str, pose_order: Sequence[str]) -> str | None:
        """Render for ``pose``, falling back to the representative image."""
        if pose in self.pose_images:
            return self.pose_images[pose]
        return self.representative_image(pose_order)


class OutfitHistory(BaseModel):
    """Ordered layers plus the cursor marking the active one.

    A non-empty history always starts with the bare model layer and keeps
    ``0 <= cursor < len(layers)``. Layers past the cursor are kept until a
    different garment is applied, so re-applying the garment just removed
    can reuse them.
    """

    layers: list[OutfitLayer] = Field(default_factory=list)
    cursor: int = 0

    @model_validator(mode="after")
    def _check_invariants(self) -> "OutfitHistory":
        if not self.layers:
            if self.cursor != 0:
                raise ValueError("empty history must have cursor 0")
            return self
        if self.layers[0].garment is not None:
            raise ValueError("first layer must be the bare model")
        if not 0 <= self.cursor < len(self.layers):
            raise ValueError(f"cursor {self.cursor} out of range for {len(self.layers)} layers")
        return self

    @classmethod
    def start(cls, model_image: str, pose: str) -> "OutfitHistory":
        """A fresh history holding only the bare model rendered in ``pose``."""
        return cls(layers=[OutfitLayer(pose_images={pose: model_image})], cursor=0)

    def __len__(self) -> int:
        return len(self.layers)

    @property
    def is_empty(self) -> bool:
        return not self.layers

    @property
    def active_layer(self) -> OutfitLayer | None:
        return self.layers[self.cursor] if self.layers else None

    @property
    def next_layer(self) -> OutfitLayer | None:
        index = self.cursor + 1
        return self.layers[index] if index < len(self.layers) else None

    @property
    def active_layers(self) -> list[OutfitLayer]:
        """Layers 0 through the cursor."""
        return self.layers[: self.cursor + 1]

    def garment_sequence(self) -> list[WardrobeItem | None]:
        return [layer.garment for layer in self.active_layers]

    def active_garment_ids(self) -> list[str]:
        return [layer.garment.id for layer in self.active_layers if layer.garment]

    def advance(self) -> None:
        """Move onto the already-rendered next layer."""
        if self.next_layer is None:
            raise IndexError("no layer after the cursor")
        self.cursor += 1

    def retreat(self) -> bool:
        """Step back one layer without discarding anything. Returns False at the base."""
        if self.cursor == 0:
            return False
        self.cursor -= 1
        return True

    def branch(self, layer: OutfitLayer) -> None:
        """Drop layers past the cursor, append ``layer`` and make it active."""
        if not self.layers:
            raise IndexError("cannot add a garment layer before the model layer")
        if layer.garment is None:
            raise ValueError("only the first layer may have no garment")
        del self.layers[self.cursor + 1:]
        self.layers.append(layer)
        self.cursor = len(self.layers) - 1
