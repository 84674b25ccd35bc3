from typing import Protocol


class ImageSynthesisService(Protocol):
    """Renders new images from an existing one.

    Images go in and come out as references (data URLs or http(s) URLs).
    Every method raises ``SynthesisError`` when no image could be produced.
    """

    async def render_with_garment(self, base_image: str, garment_image: str, background_prompt: str) -> str:
        ...

    async def render_pose_variation(self, base_image: str, pose_instruction: str, background_prompt: str) -> str:
        ...

    async def render_background(self, base_image: str, background_prompt: str) -> str:
        ...
