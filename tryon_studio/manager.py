"""Outfit history state machine: garments, poses, backgrounds and saved outfits."""

import asyncio
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Awaitable, Callable, Iterable, TypeVar

import structlog

from .catalogs import DEFAULT_BACKGROUNDS, POSE_INSTRUCTIONS, Wardrobe, find_background, pose_key
from .config import StudioConfig
from .errors import StorageError, SynthesisError, friendly_error_message
from .models import (
    Background,
    OutfitHistory,
    OutfitLayer,
    PendingChange,
    SavedOutfit,
    StudioState,
    StudioView,
    WardrobeItem,
)
from .services import ImageSynthesisService, get_synthesis_service
from .storage import FileStore, SavedOutfitStore


logger = structlog.get_logger(__name__)

T = TypeVar("T")
Listener = Callable[[StudioView], None]


class OutfitHistoryManager:
    """Owns the outfit history of one studio and every change made to it.

    At most one rendering operation (garment, pose, background or outfit
    load) runs at a time; the others decline while ``busy`` is set. Render
    failures never raise: the state is left as it was before the call, the
    busy flag is cleared and a readable message is put in ``error``.

    Async operations return True when they committed a change and False when
    they declined or failed.
    """

    def __init__(
        self,
        service: ImageSynthesisService,
        outfit_store: SavedOutfitStore,
        wardrobe: Iterable[WardrobeItem] = (),
        default_background_id: str = DEFAULT_BACKGROUNDS[0].id,
        synthesis_timeout: float | None = 120.0,
        clock: Callable[[], float] = time.time,
    ):
        self.service = service
        self.outfit_store = outfit_store
        self.wardrobe = Wardrobe(wardrobe)
        self.synthesis_timeout = synthesis_timeout
        self._clock = clock

        if find_background(default_background_id) is None:
            logger.warning("unknown_default_background", background_id=default_background_id)
            default_background_id = DEFAULT_BACKGROUNDS[0].id
        self.default_background_id = default_background_id

        self.state = StudioState(background_id=default_background_id)
        self._listeners: list[Listener] = []
        self._active_op: object | None = None
        self.failure_count = 0  # bumped each time an operation records an error
        self.saved_outfits: list[SavedOutfit] = self._load_saved_outfits()

    @classmethod
    def from_config(
        cls,
        config: StudioConfig,
        service: ImageSynthesisService | None = None,
        wardrobe: Iterable[WardrobeItem] = (),
    ) -> "OutfitHistoryManager":
        """Build a manager with the configured image service and file storage."""
        return cls(
            service=service or get_synthesis_service(config),
            outfit_store=SavedOutfitStore(FileStore(Path(config.storage_dir))),
            wardrobe=wardrobe,
            default_background_id=config.default_background_id,
            synthesis_timeout=config.synthesis_timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Queries

    @property
    def history(self) -> OutfitHistory:
        return self.state.history

    @property
    def busy(self) -> bool:
        return self.state.busy

    @property
    def current_background(self) -> Background:
        return find_background(self.state.background_id) or DEFAULT_BACKGROUNDS[0]

    @property
    def active_pose_key(self) -> str:
        return pose_key(self.state.pose_index)

    @property
    def display_image(self) -> str | None:
        """Image for the active layer in the active pose.

        Falls back to the layer's lowest-index pose render, then to the bare
        model image when there is no history yet.
        """
        layer = self.history.active_layer
        if layer is None:
            return self.state.model_image
        return layer.image_for(self.active_pose_key, POSE_INSTRUCTIONS)

    @property
    def available_pose_keys(self) -> list[str]:
        layer = self.history.active_layer
        return list(layer.pose_images) if layer else []

    def list_outfits(self) -> list[SavedOutfit]:
        return list(self.saved_outfits)

    def get_outfit(self, outfit_id: str) -> SavedOutfit | None:
        for outfit in self.saved_outfits:
            if outfit.id == outfit_id:
                return outfit
        return None

    def view(self) -> StudioView:
        """Snapshot of the current state for the presentation layer."""
        state = self.state
        pending = state.pending or PendingChange()
        return StudioView(
            model_image=state.model_image,
            display_image=self.display_image,
            pose_instructions=list(POSE_INSTRUCTIONS),
            pose_index=state.pose_index,
            pending_pose_index=pending.pose_index,
            available_pose_keys=self.available_pose_keys,
            background_id=state.background_id,
            pending_background_id=pending.background_id,
            outfit=self.history.garment_sequence(),
            active_garment_ids=self.history.active_garment_ids(),
            wardrobe=self.wardrobe.items,
            saved_outfits=list(self.saved_outfits),
            busy=state.busy,
            loading_message=state.loading_message,
            error=state.error,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a fresh view after every state change.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Synchronous operations

    def initialize(self, model_image: str) -> None:
        """Start over from ``model_image`` as the bare model layer."""
        self._abandon_active_operation()
        self.state.model_image = model_image
        self.state.history = OutfitHistory.start(model_image, pose_key(0))
        self.state.pose_index = 0
        self.state.error = None
        logger.info("studio_initialized")
        self._notify()

    def start_over(self) -> None:
        """Forget the model and outfit. Saved outfits are kept."""
        self._abandon_active_operation()
        self.state = StudioState(background_id=self.default_background_id)
        self.wardrobe.reset()
        logger.info("studio_reset")
        self._notify()

    def remove_last_garment(self) -> bool:
        """Step the cursor back one layer. Later layers stay for a quick re-apply."""
        if self.busy or not self.history.retreat():
            return False
        self.state.pose_index = 0
        logger.info("garment_removed", cursor=self.history.cursor)
        self._notify()
        return True

    def save_outfit(self, name: str | None = None) -> SavedOutfit | None:
        """Persist the active garment sequence.

        Needs at least one garment on the model. Returns the saved outfit,
        or None if declined or the store failed.
        """
        display_image = self.display_image
        if len(self.history.active_layers) < 2 or not display_image:
            logger.debug("save_outfit_declined", layers=len(self.history.active_layers))
            return None

        outfit = SavedOutfit(
            id=self._new_outfit_id(),
            name=name or f"Outfit {len(self.saved_outfits) + 1}",
            thumbnail_url=display_image,
            layers=self.history.garment_sequence(),
        )
        outfits = self.saved_outfits + [outfit]
        try:
            self.outfit_store.save_all(outfits)
        except StorageError as e:
            logger.error("save_outfit_failed", error=str(e))
            self._set_error("Could not save outfit. Storage might be full.")
            self._notify()
            return None

        self.saved_outfits = outfits
        logger.info("outfit_saved", outfit_id=outfit.id, garments=len(outfit.garments))
        self._notify()
        return outfit

    def delete_outfit(self, outfit_id: str) -> bool:
        """Remove a saved outfit. The current outfit is not affected."""
        if self.get_outfit(outfit_id) is None:
            return False
        outfits = [outfit for outfit in self.saved_outfits if outfit.id != outfit_id]
        try:
            self.outfit_store.save_all(outfits)
        except StorageError as e:
            logger.error("delete_outfit_failed", outfit_id=outfit_id, error=str(e))
            self._set_error("Could not update saved outfits.")
            self._notify()
            return False

        self.saved_outfits = outfits
        logger.info("outfit_deleted", outfit_id=outfit_id)
        self._notify()
        return True

    # ------------------------------------------------------------------
    # Rendering operations

    async def apply_garment(self, garment: WardrobeItem, garment_image: str | None = None) -> bool:
        """Layer ``garment`` on top of the active layer.

        Re-applying the garment of the layer right after the cursor moves
        onto that layer without rendering again.

        Args:
            garment: The wardrobe item to add
            garment_image: Image of the garment; defaults to ``garment.image_url``
        """
        if self.history.is_empty or self.busy:
            logger.debug("apply_garment_declined", garment_id=garment.id, busy=self.busy)
            return False

        next_layer = self.history.next_layer
        if next_layer is not None and next_layer.garment_id == garment.id:
            self.history.advance()
            self.state.pose_index = 0
            logger.info("garment_reapplied", garment_id=garment.id, cursor=self.history.cursor)
            self._notify()
            return True

        base_image = self.display_image
        if base_image is None:
            return False
        pose = self.active_pose_key
        background = self.current_background

        with self._operation(f"Adding {garment.name}...") as token:
            try:
                image = await self._render(
                    self.service.render_with_garment(base_image, garment_image or garment.image_url, background.prompt)
                )
            except SynthesisError as e:
                if self._is_current(token):
                    self._fail(e, "Failed to apply garment", operation="apply_garment")
                return False
            if not self._is_current(token):
                return False

            self.history.branch(OutfitLayer(garment=garment, pose_images={pose: image}))
            self.state.pose_index = 0
            self.wardrobe.register(garment)
            logger.info("garment_applied", garment_id=garment.id, cursor=self.history.cursor)
            return True

    async def select_pose(self, pose_index: int) -> bool:
        """Show the active layer in another pose, rendering it if not cached."""
        if not 0 <= pose_index < len(POSE_INSTRUCTIONS):
            logger.debug("select_pose_declined", pose_index=pose_index, reason="out_of_range")
            return False
        if pose_index == self.state.pose_index or self.busy or self.history.is_empty:
            return False

        layer = self.history.active_layer
        pose = pose_key(pose_index)
        if pose in layer.pose_images:
            self.state.pose_index = pose_index
            logger.info("pose_selected", pose_index=pose_index, cached=True)
            self._notify()
            return True

        base_image = layer.representative_image(POSE_INSTRUCTIONS)
        if base_image is None:
            return False
        background = self.current_background

        with self._operation("Changing pose...", PendingChange(pose_index=pose_index)) as token:
            try:
                image = await self._render(
                    self.service.render_pose_variation(base_image, pose, background.prompt)
                )
            except SynthesisError as e:
                if self._is_current(token):
                    self._fail(e, "Failed to change pose", operation="select_pose")
                return False
            if not self._is_current(token):
                return False

            layer.pose_images[pose] = image
            self.state.pose_index = pose_index
            logger.info("pose_selected", pose_index=pose_index, cached=False)
            return True

    async def change_background(self, background_id: str) -> bool:
        """Re-render the active layer against another background.

        On success the layer keeps only the active pose's render; the other
        cached poses show the old background and are dropped.
        """
        background = find_background(background_id)
        if (
            background is None
            or background_id == self.state.background_id
            or self.busy
            or self.history.is_empty
        ):
            logger.debug("change_background_declined", background_id=background_id)
            return False

        layer = self.history.active_layer
        pose = self.active_pose_key
        base_image = self.display_image
        if base_image is None:
            return False

        pending = PendingChange(background_id=background.id)
        with self._operation(f"Changing background to {background.name}...", pending) as token:
            try:
                image = await self._render(self.service.render_background(base_image, background.prompt))
            except SynthesisError as e:
                if self._is_current(token):
                    self._fail(e, "Failed to change background", operation="change_background")
                return False
            if not self._is_current(token):
                return False

            layer.pose_images = {pose: image}
            self.state.background_id = background.id
            logger.info("background_changed", background_id=background.id)
            return True

    async def load_outfit(self, outfit: SavedOutfit) -> bool:
        """Rebuild the history by re-applying each garment of ``outfit`` in order.

        Renders under the default background. The new history only replaces
        the current one if every garment rendered.
        """
        if self.busy or self.state.model_image is None:
            logger.debug("load_outfit_declined", outfit_id=outfit.id)
            return False

        model_image = self.state.model_image
        background = find_background(self.default_background_id) or DEFAULT_BACKGROUNDS[0]
        garments = outfit.garments
        scratch = OutfitHistory.start(model_image, pose_key(0))

        with self._operation(f"Loading {outfit.name}...") as token:
            current_image = model_image
            try:
                for i, garment in enumerate(garments, start=1):
                    if not self._is_current(token):
                        return False
                    self.state.loading_message = f"Applying {garment.name}... ({i}/{len(garments)})"
                    self._notify()
                    current_image = await self._render(
                        self.service.render_with_garment(current_image, garment.image_url, background.prompt)
                    )
                    scratch.branch(OutfitLayer(garment=garment, pose_images={pose_key(0): current_image}))
            except SynthesisError as e:
                if self._is_current(token):
                    self._fail(e, "Failed to load outfit", operation="load_outfit")
                return False
            if not self._is_current(token):
                return False

            self.state.history = scratch
            self.state.pose_index = 0
            self.state.background_id = background.id
            for garment in garments:
                self.wardrobe.register(garment)
            logger.info("outfit_loaded", outfit_id=outfit.id, garments=len(garments))
            return True

    # ------------------------------------------------------------------
    # Internals

    @contextmanager
    def _operation(self, message: str, pending: PendingChange | None = None):
        """Hold the busy flag for one rendering operation.

        Yields a token identifying the operation. If the studio is reset
        while it runs, the token goes stale and the result must be dropped.
        """
        token = object()
        self._active_op = token
        self.state.busy = True
        self.state.loading_message = message
        self.state.error = None
        self.state.pending = pending
        self._notify()
        try:
            yield token
        finally:
            if self._active_op is token:
                self._active_op = None
                self.state.busy = False
                self.state.loading_message = ""
                self.state.pending = None
                self._notify()

    def _is_current(self, token: object) -> bool:
        return self._active_op is token

    def _abandon_active_operation(self) -> None:
        if self._active_op is not None:
            logger.info("operation_abandoned")
        self._active_op = None
        self.state.busy = False
        self.state.loading_message = ""
        self.state.pending = None

    async def _render(self, call: Awaitable[T]) -> T:
        """Await a service call, turning a timeout into a SynthesisError."""
        try:
            return await asyncio.wait_for(call, timeout=self.synthesis_timeout)
        except asyncio.TimeoutError as e:
            raise SynthesisError(
                f"The image service did not respond within {self.synthesis_timeout:g} seconds"
            ) from e

    def _fail(self, error: Exception, context: str, operation: str) -> None:
        self._set_error(friendly_error_message(error, context))
        logger.warning(f"{operation}_failed", error=str(error))

    def _set_error(self, message: str) -> None:
        self.state.error = message
        self.failure_count += 1

    def _notify(self) -> None:
        if not self._listeners:
            return
        view = self.view()
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("listener_failed")

    def _load_saved_outfits(self) -> list[SavedOutfit]:
        try:
            return self.outfit_store.load()
        except StorageError as e:
            logger.error("load_saved_outfits_failed", error=str(e))
            return []

    def _new_outfit_id(self) -> str:
        outfit_id = int(self._clock() * 1000)
        existing = {outfit.id for outfit in self.saved_outfits}
        while str(outfit_id) in existing:
            outfit_id += 1
        return str(outfit_id)
