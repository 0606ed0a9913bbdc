"""Tests for image description generation."""

import asyncio

import pytest
from pydantic import ValidationError

from acc_importer.services.vision import (
    DESCRIPTION_SCHEMA,
    DescriptionService,
    _detect_mime_type,
    _to_data_url,
)
from tests.conftest import JPEG_BYTES, FakeVisionClient


def test_describe_returns_text_with_tags() -> None:
    client = FakeVisionClient()

    text = asyncio.run(
        DescriptionService(client, "test-model").describe(
            JPEG_BYTES, title="Level 2", notes="Before pour"
        )
    )

    assert text == (
        "Rebar placed for a concrete slab on level 2.\nTags: rebar, slab"
    )
    assert "Title: Level 2" in client.prompts[0]
    assert "Notes from the site team: Before pour" in client.prompts[0]


def test_describe_without_hints_or_tags() -> None:
    client = FakeVisionClient(payload={"description": "Crane on site", "tags": []})

    text = asyncio.run(DescriptionService(client, "m").describe(JPEG_BYTES))

    assert text == "Crane on site"
    assert "Title:" not in client.prompts[0]


def test_describe_rejects_empty_description() -> None:
    client = FakeVisionClient(payload={"description": "", "tags": []})

    with pytest.raises(ValidationError):
        asyncio.run(DescriptionService(client, "m").describe(JPEG_BYTES))


def test_detect_mime_type() -> None:
    assert _detect_mime_type(b"\x89PNG\r\n\x1a\nrest") == "image/png"
    assert _detect_mime_type(b"RIFF\x00\x00\x00\x00WEBPVP8") == "image/webp"
    assert _detect_mime_type(JPEG_BYTES) == "image/jpeg"
    assert _to_data_url(b"abc") == "data:image/jpeg;base64,YWJj"


def test_schema_is_strict() -> None:
    assert DESCRIPTION_SCHEMA["additionalProperties"] is False
    assert DESCRIPTION_SCHEMA["required"] == ["description", "tags"]
