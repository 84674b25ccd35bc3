import hashlib
import io

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

from ..errors import SynthesisError
from ..utils.images import load_image_reference, to_data_url


class MockSynthesisService:
    """Offline stand-in for the image service, for local development.

    Garments are pasted onto the lower right of the base image, pose changes
    mirror it and background changes add a border tinted from the prompt.
    """

    async def render_with_garment(self, base_image: str, garment_image: str, background_prompt: str) -> str:
        base = await self._open(base_image)
        garment = await self._open(garment_image)

        target_w = max(1, base.width // 3)
        ratio = target_w / max(1, garment.width)
        garment_resized = garment.resize((target_w, max(1, int(garment.height * ratio))))

        canvas = base.copy()
        offset = (base.width - garment_resized.width, max(0, base.height - garment_resized.height))
        canvas.paste(garment_resized, offset)
        return self._encode(canvas)

    async def render_pose_variation(self, base_image: str, pose_instruction: str, background_prompt: str) -> str:
        base = await self._open(base_image)
        return self._encode(ImageOps.mirror(base))

    async def render_background(self, base_image: str, background_prompt: str) -> str:
        base = await self._open(base_image)
        border = max(4, min(base.width, base.height) // 20)
        framed = ImageOps.expand(base, border=border, fill=self._tint(background_prompt))
        return self._encode(framed.resize(base.size))

    async def _open(self, reference: str) -> Image.Image:
        try:
            data, _ = await load_image_reference(reference)
            return Image.open(io.BytesIO(data)).convert("RGB")
        except (ValueError, UnidentifiedImageError, OSError, httpx.HTTPError) as e:
            raise SynthesisError(f"Could not read input image: {e}") from e

    def _encode(self, img: Image.Image) -> str:
        output = io.BytesIO()
        img.save(output, format="PNG")
        return to_data_url(output.getvalue(), "image/png")

    def _tint(self, prompt: str) -> tuple[int, int, int]:
        digest = hashlib.md5(prompt.encode()).digest()
        return digest[0], digest[1], digest[2]
