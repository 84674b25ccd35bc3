"""Fixed pose and background catalogs, and the growing wardrobe."""

from typing import Iterable

from .models import Background, WardrobeItem


POSE_INSTRUCTIONS: list[str] = [
    "Full frontal view, hands on hips",
    "Slightly turned, 3/4 view",
    "Side profile view",
    "Jumping in the air, mid-action shot",
    "Walking towards camera",
    "Leaning against a wall",
]


DEFAULT_BACKGROUNDS: list[Background] = [
    Background(
        id="studio",
        name="Neutral Studio",
        thumbnail_url="https://storage.googleapis.com/gemini-95-icons/background-studio.jpg",
        prompt="a clean, neutral studio backdrop (light gray, #f0f0f0)",
    ),
    Background(
        id="outdoor-cafe",
        name="Outdoor Cafe",
        thumbnail_url="https://storage.googleapis.com/gemini-95-icons/background-cafe.jpg",
        prompt=(
            "a blurry, sun-drenched outdoor cafe patio with green plants in the background, "
            "creating a soft bokeh effect"
        ),
    ),
    Background(
        id="city-street",
        name="City Street",
        thumbnail_url="https://storage.googleapis.com/gemini-95-icons/background-city.jpg",
        prompt=(
            "a vibrant, slightly blurred city street scene during the day, "
            "with architectural details and soft light"
        ),
    ),
    Background(
        id="abstract",
        name="Abstract",
        thumbnail_url="https://storage.googleapis.com/gemini-95-icons/background-gradient.jpg",
        prompt=(
            "a minimal, abstract background with a soft, tasteful gradient of pastel colors "
            "(light peach to soft lavender)"
        ),
    ),
]


def pose_key(index: int) -> str:
    """Pose instruction at ``index``; raises IndexError outside the catalog."""
    if not 0 <= index < len(POSE_INSTRUCTIONS):
        raise IndexError(f"pose index {index} out of range")
    return POSE_INSTRUCTIONS[index]


def find_background(background_id: str) -> Background | None:
    for background in DEFAULT_BACKGROUNDS:
        if background.id == background_id:
            return background
    return None


class Wardrobe:
    """Garments offered to the user. Append-only, unique by id, order preserved."""

    def __init__(self, initial: Iterable[WardrobeItem] = ()):
        self._initial = list(initial)
        self._items: list[WardrobeItem] = []
        self.reset()

    def __iter__(self):
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, garment_id: object) -> bool:
        return any(item.id == garment_id for item in self._items)

    @property
    def items(self) -> list[WardrobeItem]:
        return list(self._items)

    def get(self, garment_id: str) -> WardrobeItem | None:
        for item in self._items:
            if item.id == garment_id:
                return item
        return None

    def register(self, item: WardrobeItem) -> bool:
        """Append ``item`` unless its id is known. Returns True if it was added."""
        if item.id in self:
            return False
        self._items.append(item)
        return True

    def reset(self) -> None:
        """Back to the initial catalog, dropping registered garments."""
        self._items = []
        for item in self._initial:
            self.register(item)
