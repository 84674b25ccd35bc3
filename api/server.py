"""FastAPI server for the Try-On Studio.

Exposes the outfit history manager to a browser front end:
- upload a model photo, then layer garments onto it
- switch pose or background
- save, load and delete outfits
Every mutating route answers with the new studio state.
"""

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, model_validator

from tryon_studio.catalogs import DEFAULT_BACKGROUNDS, POSE_INSTRUCTIONS
from tryon_studio.config import load_config
from tryon_studio.log import configure_logging
from tryon_studio.manager import OutfitHistoryManager
from tryon_studio.models import Background, SavedOutfit, StudioView, WardrobeItem
from tryon_studio.utils.images import decode_data_url, normalize_to_png, to_data_url


logger = structlog.get_logger(__name__)


app = FastAPI(
    title="Try-On Studio API",
    description="Layered virtual try-on with pose and background changes",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ModelPhotoRequest(BaseModel):
    """Request body for setting the model photo."""
    model_photo: str  # Base64 data URL


class GarmentRequest(BaseModel):
    """Request body for adding a garment."""
    id: str
    name: str
    garment_photo: str | None = None  # Base64 data URL
    garment_url: str | None = None

    @model_validator(mode="after")
    def _require_image(self) -> "GarmentRequest":
        if not self.garment_photo and not self.garment_url:
            raise ValueError("garment_photo or garment_url is required")
        return self


class PoseRequest(BaseModel):
    pose_index: int


class BackgroundRequest(BaseModel):
    background_id: str


class SaveOutfitRequest(BaseModel):
    name: str | None = None


class StudioResponse(BaseModel):
    """Outcome of a studio action together with the resulting state."""
    success: bool
    state: StudioView
    error: str | None = None


class CatalogResponse(BaseModel):
    poses: list[str]
    backgrounds: list[Background]
    wardrobe: list[WardrobeItem]


# Initialize manager (will be done on first request)
_manager: OutfitHistoryManager | None = None


def get_manager() -> OutfitHistoryManager:
    """Get or create the studio manager."""
    global _manager
    if _manager is None:
        config = load_config()  # Loads from .env automatically via pydantic-settings
        configure_logging(config.log_level, config.log_json)
        _manager = OutfitHistoryManager.from_config(config)
    return _manager


def _respond(manager: OutfitHistoryManager, success: bool, failures_before: int | None = None) -> StudioResponse:
    """Wrap the current state. Only a call that failed reports an error; a declined one does not."""
    view = manager.view()
    failed = not success and failures_before is not None and manager.failure_count > failures_before
    return StudioResponse(success=success, state=view, error=view.error if failed else None)


def _normalize_photo(photo: str) -> str:
    """Decode an uploaded photo and re-encode it as a PNG data URL."""
    try:
        data, _ = decode_data_url(photo)
        return to_data_url(normalize_to_png(data), "image/png")
    except ValueError as e:
        logger.warning("invalid_image_upload", error=str(e))
        raise HTTPException(status_code=422, detail=f"Invalid image: {e}")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Try-On Studio API", "version": "1.0.0"}


@app.get("/health")
async def health():
    """Detailed health check."""
    manager = get_manager()
    return {
        "status": "ok",
        "busy": manager.busy,
        "model_loaded": manager.state.model_image is not None,
        "saved_outfits": len(manager.saved_outfits),
    }


@app.get("/api/catalog", response_model=CatalogResponse)
async def catalog():
    manager = get_manager()
    return CatalogResponse(
        poses=list(POSE_INSTRUCTIONS),
        backgrounds=list(DEFAULT_BACKGROUNDS),
        wardrobe=manager.wardrobe.items,
    )


@app.get("/api/state", response_model=StudioView)
async def get_state():
    return get_manager().view()


@app.post("/api/model", response_model=StudioResponse)
async def set_model(request: ModelPhotoRequest):
    """Use the uploaded photo as the bare model layer."""
    manager = get_manager()
    manager.initialize(_normalize_photo(request.model_photo))
    return _respond(manager, True)


@app.post("/api/start-over", response_model=StudioResponse)
async def start_over():
    manager = get_manager()
    manager.start_over()
    return _respond(manager, True)


@app.post("/api/garments", response_model=StudioResponse)
async def add_garment(request: GarmentRequest):
    """Layer a garment onto the current outfit."""
    manager = get_manager()
    garment_image = _normalize_photo(request.garment_photo) if request.garment_photo else request.garment_url
    garment = WardrobeItem(id=request.id, name=request.name, image_url=garment_image)
    failures = manager.failure_count
    success = await manager.apply_garment(garment, garment_image)
    return _respond(manager, success, failures)


@app.post("/api/garments/remove-last", response_model=StudioResponse)
async def remove_last_garment():
    manager = get_manager()
    return _respond(manager, manager.remove_last_garment())


@app.post("/api/pose", response_model=StudioResponse)
async def select_pose(request: PoseRequest):
    manager = get_manager()
    failures = manager.failure_count
    return _respond(manager, await manager.select_pose(request.pose_index), failures)


@app.post("/api/background", response_model=StudioResponse)
async def change_background(request: BackgroundRequest):
    manager = get_manager()
    failures = manager.failure_count
    return _respond(manager, await manager.change_background(request.background_id), failures)


@app.get("/api/outfits", response_model=list[SavedOutfit])
async def list_outfits():
    return get_manager().list_outfits()


@app.post("/api/outfits", response_model=StudioResponse)
async def save_outfit(request: SaveOutfitRequest | None = None):
    manager = get_manager()
    failures = manager.failure_count
    outfit = manager.save_outfit(request.name if request else None)
    return _respond(manager, outfit is not None, failures)


@app.post("/api/outfits/{outfit_id}/load", response_model=StudioResponse)
async def load_outfit(outfit_id: str):
    manager = get_manager()
    outfit = manager.get_outfit(outfit_id)
    if outfit is None:
        raise HTTPException(status_code=404, detail="Outfit not found")
    failures = manager.failure_count
    return _respond(manager, await manager.load_outfit(outfit), failures)


@app.delete("/api/outfits/{outfit_id}", response_model=StudioResponse)
async def delete_outfit(outfit_id: str):
    manager = get_manager()
    if manager.get_outfit(outfit_id) is None:
        raise HTTPException(status_code=404, detail="Outfit not found")
    failures = manager.failure_count
    return _respond(manager, manager.delete_outfit(outfit_id), failures)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
