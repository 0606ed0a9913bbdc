"""Download of signed ACC image URLs with a size ceiling."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from acc_importer.errors import ValidationError

SIZE_LIMIT_MESSAGE = "Image exceeds size limit"


@dataclass(frozen=True)
class RemoteImage:
    """Downloaded bytes and the content type the server declared."""

    data: bytes
    content_type: str


class RemoteImageClient(Protocol):
    """Interface for fetching remote image bytes."""

    async def fetch(self, url: str, max_bytes: int) -> RemoteImage:
        """Download ``url``, rejecting bodies larger than ``max_bytes``."""


@dataclass
class HttpxRemoteImageClient(RemoteImageClient):
    """Streams remote images with httpx so oversized bodies are never buffered."""

    http_client: httpx.AsyncClient

    @classmethod
    def create(cls) -> "HttpxRemoteImageClient":
        """Create a client with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient())

    async def fetch(self, url: str, max_bytes: int) -> RemoteImage:
        """Download the image, checking the declared and the actual size."""
        async with self.http_client.stream("GET", url, timeout=30) as response:
            if not response.is_success:
                raise ValidationError(
                    f"Failed to fetch image ({response.status_code})"
                )
            declared = response.headers.get("content-length", "")
            if declared.isdigit() and int(declared) > max_bytes:
                raise ValidationError(SIZE_LIMIT_MESSAGE)

            buffer = bytearray()
            async for chunk in response.aiter_bytes():
                buffer.extend(chunk)
                if len(buffer) > max_bytes:
                    raise ValidationError(SIZE_LIMIT_MESSAGE)

            content_type = response.headers.get("content-type", "")
        return RemoteImage(
            data=bytes(buffer), content_type=content_type.split(";")[0].strip()
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
