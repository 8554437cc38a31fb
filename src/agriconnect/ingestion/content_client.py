"""
Content-generation client (Gemini `generateContent` over REST).

Used for short job descriptions, equipment maintenance tips and equipment product
images. None of it is load-bearing: every public method returns a fixed placeholder
when the API key is missing, the call fails, or the payload has an unexpected shape.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from agriconnect.config.settings import Settings
from agriconnect.core.errors import CollaboratorUnavailable
from agriconnect.core.http import post_json

logger = logging.getLogger(__name__)

DESCRIPTION_FALLBACK = "Could not generate description automatically."
DESCRIPTION_EMPTY = "No description generated."
TIPS_FALLBACK = "Maintenance tips unavailable."
TIPS_EMPTY = "No tips available."


def _parts(payload: Any) -> list[dict[str, Any]]:
    try:
        parts = payload["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError) as e:
        raise CollaboratorUnavailable("content", f"unexpected response shape: {e!r}") from e
    return [p for p in parts if isinstance(p, dict)]


class ContentClient:
    def __init__(self, settings: Settings):
        self._settings = settings

    @property
    def configured(self) -> bool:
        return bool(self._settings.content.api_key)

    def _generate(self, model: str, prompt: str, generation_config: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        cfg = self._settings.content
        if not cfg.api_key:
            raise CollaboratorUnavailable("content", "no API key configured")
        body: dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if generation_config:
            body["generationConfig"] = generation_config
        try:
            payload = post_json(
                f"{cfg.base_url.rstrip('/')}/models/{model}:generateContent",
                payload=body,
                headers={"x-goog-api-key": cfg.api_key},
                timeout_seconds=self._settings.app.http_timeout_seconds,
            )
        except (httpx.HTTPError, ValueError) as e:
            raise CollaboratorUnavailable("content", str(e)) from e
        return _parts(payload)

    def _text(self, prompt: str, *, fallback: str, empty: str) -> str:
        try:
            parts = self._generate(self._settings.content.text_model, prompt)
        except CollaboratorUnavailable as e:
            logger.warning("Text generation failed: %s", e)
            return fallback
        text = "".join(p.get("text") or "" for p in parts).strip()
        return text or empty

    def job_description(self, work_type: str, location: str) -> str:
        prompt = (
            "Write a short, inviting, and clear job description (max 30 words) for an agricultural job.\n"
            f"Work Type: {work_type}.\n"
            f"Location: {location}.\n"
            "Target audience: Local farm workers."
        )
        return self._text(prompt, fallback=DESCRIPTION_FALLBACK, empty=DESCRIPTION_EMPTY)

    def maintenance_tips(self, equipment_name: str) -> str:
        prompt = (
            f"Provide 3 short, bulleted maintenance tips for a farming {equipment_name}. "
            "Keep it under 50 words total."
        )
        return self._text(prompt, fallback=TIPS_FALLBACK, empty=TIPS_EMPTY)

    def equipment_image(self, equipment_type: str, name: str) -> str:
        """Return a `data:` URI for a generated product photo, or the stock image URI."""
        fallback = self._settings.content.fallback_image_uri
        prompt = (
            f"A high-quality, realistic, professional product photograph of a {equipment_type} "
            f"(farming equipment), specifically a {name}. The equipment should be centered, clean, "
            "and shown in a sunny, outdoors farm setting. No people in the frame. "
            "Cinematic lighting, 4k detail."
        )
        try:
            parts = self._generate(
                self._settings.content.image_model,
                prompt,
                {"responseModalities": ["IMAGE"], "imageConfig": {"aspectRatio": "1:1"}},
            )
        except CollaboratorUnavailable as e:
            logger.warning("Image generation failed: %s", e)
            return fallback
        for part in parts:
            inline = part.get("inlineData") or {}
            if isinstance(inline, dict) and inline.get("data"):
                mime = inline.get("mimeType") or "image/png"
                return f"data:{mime};base64,{inline['data']}"
        return fallback
