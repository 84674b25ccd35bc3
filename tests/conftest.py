# Test fixtures and configuration
import io
import pytest
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from PIL import Image

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tryon_studio.manager import OutfitHistoryManager
from tryon_studio.models import WardrobeItem
from tryon_studio.storage import MemoryStore, SavedOutfitStore
from tryon_studio.utils.images import to_data_url


FIXED_NOW = 1_700_000_000.0


@pytest.fixture
def shirt():
    return WardrobeItem(id="shirt", name="Shirt", image_url="shirt.png")


@pytest.fixture
def jacket():
    return WardrobeItem(id="jacket", name="Jacket", image_url="jacket.png")


@pytest.fixture
def hat():
    return WardrobeItem(id="hat", name="Hat", image_url="hat.png")


@pytest.fixture
def service():
    """Image service double whose results spell out how they were made."""
    svc = MagicMock()
    svc.render_with_garment = AsyncMock(side_effect=lambda base, garment, bg: f"{base}+{garment}")
    svc.render_pose_variation = AsyncMock(side_effect=lambda base, pose, bg: f"{base}@{pose}")
    svc.render_background = AsyncMock(side_effect=lambda base, bg: f"{base}#{bg}")
    return svc


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def manager(service, memory_store):
    """Manager with the fake service, in-memory storage and a frozen clock."""
    return OutfitHistoryManager(
        service=service,
        outfit_store=SavedOutfitStore(memory_store),
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def png_bytes():
    """Small valid PNG image bytes."""
    output = io.BytesIO()
    Image.new("RGB", (8, 12), color=(200, 40, 40)).save(output, format="PNG")
    return output.getvalue()


@pytest.fixture
def png_data_url(png_bytes):
    return to_data_url(png_bytes, "image/png")
