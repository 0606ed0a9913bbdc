"""Searchable descriptions of imported photos."""

import base64
from dataclasses import dataclass
from typing import Protocol

from acc_importer.domain.vision import ImageDescription

DESCRIPTION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "description": {"type": "string"},
        "tags": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["description", "tags"],
    "additionalProperties": False,
}

_PROMPT = (
    "Describe this construction site photo for a search index. "
    "Mention visible work, materials, equipment, defects and safety issues. "
    "Return a short paragraph and a handful of lowercase tags."
)


class VisionClient(Protocol):
    """Interface for LLM vision calls with structured output."""

    async def extract(
        self,
        *,
        model: str,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return structured data for an image."""


@dataclass
class DescriptionService:
    """Generates the text indexed for each stored photo."""

    client: VisionClient
    model: str

    async def describe(
        self, image_bytes: bytes, title: str = "", notes: str = ""
    ) -> str:
        """Describe an image, using the ACC title and notes as hints."""
        prompt = _PROMPT
        if title:
            prompt += f"\nTitle: {title}"
        if notes:
            prompt += f"\nNotes from the site team: {notes}"
        raw = await self.client.extract(
            model=self.model,
            image_data_url=_to_data_url(image_bytes),
            schema=DESCRIPTION_SCHEMA,
            prompt=prompt,
        )
        return ImageDescription.model_validate(raw).as_text()


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
