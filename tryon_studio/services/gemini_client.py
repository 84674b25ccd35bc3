"""Gemini API client for try-on, pose and background image edits."""

import base64
from typing import Any

import httpx
import structlog

from ..config import GeminiConfig
from ..errors import SynthesisError
from ..utils.images import load_image_reference
from .prompts import build_background_prompt, build_garment_prompt, build_pose_prompt


logger = structlog.get_logger(__name__)


class GeminiImageClient:
    """Client for Gemini's ``generateContent`` endpoint with image output."""

    def __init__(
        self,
        config: GeminiConfig,
        api_key: str | None,
        timeout: float = 120.0,
    ):
        self.config = config
        self.api_key = api_key
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def render_with_garment(self, base_image: str, garment_image: str, background_prompt: str) -> str:
        return await self._generate(
            [base_image, garment_image],
            build_garment_prompt(background_prompt),
            operation="render_with_garment",
        )

    async def render_pose_variation(self, base_image: str, pose_instruction: str, background_prompt: str) -> str:
        return await self._generate(
            [base_image],
            build_pose_prompt(pose_instruction, background_prompt),
            operation="render_pose_variation",
        )

    async def render_background(self, base_image: str, background_prompt: str) -> str:
        return await self._generate(
            [base_image],
            build_background_prompt(background_prompt),
            operation="render_background",
        )

    async def _generate(self, images: list[str], prompt: str, operation: str) -> str:
        """Send images plus prompt and return the generated image as a data URL."""
        if not self.api_key:
            raise SynthesisError("GEMINI_API_KEY not configured")

        parts: list[dict[str, Any]] = []
        for reference in images:
            parts.append(await self._inline_part(reference))
        parts.append({"text": prompt})

        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {"responseModalities": ["IMAGE", "TEXT"]},
        }
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        logger.info("synthesis_request", operation=operation, model=self.config.model, images=len(images))
        try:
            response = await self.client.post(self.config.generate_url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            raise SynthesisError(f"Timed out waiting for the image service: {e}") from e
        except httpx.HTTPError as e:
            raise SynthesisError(f"Could not reach the image service: {e}") from e

        logger.info("synthesis_response", operation=operation, status=response.status_code)
        if response.status_code == 429:
            raise SynthesisError("The image service is rate limited. Please wait a moment and try again.")
        if response.status_code >= 400:
            raise SynthesisError(f"Image service rejected the request: {response.status_code} {response.text[:300]}")

        try:
            data = response.json()
        except ValueError as e:
            raise SynthesisError("Image service returned an invalid response") from e
        if not isinstance(data, dict):
            raise SynthesisError("Image service returned an invalid response")
        return self._extract_image(data)

    async def _inline_part(self, reference: str) -> dict[str, Any]:
        try:
            data, mime_type = await load_image_reference(reference, self.client)
        except (ValueError, httpx.HTTPError) as e:
            raise SynthesisError(f"Could not read input image: {e}") from e
        return {"inline_data": {"mime_type": mime_type, "data": base64.b64encode(data).decode("ascii")}}

    def _extract_image(self, data: dict[str, Any]) -> str:
        """Pull the first inline image out of a generateContent response."""
        feedback = data.get("promptFeedback") or {}
        if feedback.get("blockReason"):
            reason = feedback.get("blockReasonMessage") or feedback["blockReason"]
            raise SynthesisError(f"Request was blocked. Reason: {reason}")

        candidates = data.get("candidates") or []
        if not candidates:
            raise SynthesisError("The model did not return an image")

        candidate = candidates[0]
        text_parts: list[str] = []
        for part in (candidate.get("content") or {}).get("parts") or []:
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                return f"data:{mime_type};base64,{inline['data']}"
            if part.get("text"):
                text_parts.append(part["text"])

        finish_reason = candidate.get("finishReason")
        if finish_reason and finish_reason != "STOP":
            raise SynthesisError(f"Image generation stopped unexpectedly. Reason: {finish_reason}")
        detail = " ".join(text_parts).strip()
        if detail:
            raise SynthesisError(f"The model did not return an image. Response: {detail[:200]}")
        raise SynthesisError("The model did not return an image")

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
