"""Studio state owned by the manager and the read model handed to the UI."""

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .outfit import OutfitHistory
from .wardrobe import SavedOutfit, WardrobeItem


class PendingChange(BaseModel):
    """A pose or background switch waiting on a render.

    Committed values in ``StudioState`` are only replaced once the render
    succeeds; dropping the pending change is the rollback.
    """

    pose_index: int | None = None
    background_id: str | None = None


class StudioState(BaseModel):
    """Mutable state of one studio. Only the manager writes to it."""

    model_image: str | None = None
    history: OutfitHistory = Field(default_factory=OutfitHistory)
    pose_index: int = 0
    background_id: str

    busy: bool = False
    loading_message: str = ""
    error: str | None = None
    pending: PendingChange | None = None


class StudioView(BaseModel):
    """Immutable snapshot of everything the presentation layer renders."""

    model_config = ConfigDict(frozen=True)

    model_image: str | None
    display_image: str | None

    pose_instructions: list[str]
    pose_index: int
    pending_pose_index: int | None = None
    available_pose_keys: list[str]

    background_id: str
    pending_background_id: str | None = None

    outfit: list[WardrobeItem | None]
    active_garment_ids: list[str]
    wardrobe: list[WardrobeItem]
    saved_outfits: list[SavedOutfit]

    busy: bool
    loading_message: str
    error: str | None

    @computed_field
    @property
    def selected_pose_index(self) -> int:
        """Pose the UI should highlight, including one still rendering."""
        return self.pending_pose_index if self.pending_pose_index is not None else self.pose_index

    @computed_field
    @property
    def selected_background_id(self) -> str:
        return self.pending_background_id or self.background_id

    @computed_field
    @property
    def can_remove_garment(self) -> bool:
        return len(self.outfit) > 1 and not self.busy

    @computed_field
    @property
    def can_save(self) -> bool:
        return len(self.outfit) > 1 and self.display_image is not None
