"""Tests for HTTP-based adapters."""

import asyncio
import json
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from acc_importer.adapters.acc_catalog_client import HttpxCatalogClient
from acc_importer.adapters.aps_auth_client import HttpxApsAuthClient
from acc_importer.adapters.openai_vision_client import OpenAIVisionClient
from acc_importer.adapters.remote_image_client import HttpxRemoteImageClient
from acc_importer.errors import UpstreamHttpError, ValidationError
from tests.conftest import make_session


class _FakeResponses:
    def __init__(self, output_text: str) -> None:
        self.output_text = output_text
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeOpenAI:
    def __init__(self, output_text: str) -> None:
        self.responses = _FakeResponses(output_text)


class _TrackingStream(httpx.AsyncByteStream):
    def __init__(self, chunks: list[bytes]) -> None:
        self.chunks = chunks
        self.read_chunks = 0

    async def __aiter__(self):  # type: ignore[no-untyped-def]
        for chunk in self.chunks:
            self.read_chunks += 1
            yield chunk


def _auth_client(handler) -> HttpxApsAuthClient:  # type: ignore[no-untyped-def]
    return HttpxApsAuthClient(
        client_id="client-id",
        client_secret="client-secret",
        callback_url="https://app.test/api/auth/callback",
        base_url="https://aps.test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def test_openai_vision_client_parses_output() -> None:
    fake = _FakeOpenAI(json.dumps({"description": "Slab", "tags": []}))
    client = OpenAIVisionClient(client=fake)

    result = asyncio.run(
        client.extract(
            model="gpt-5.2",
            image_data_url="data:image/jpeg;base64,ZmFrZQ==",
            schema={"type": "object"},
            prompt="Describe",
        )
    )

    assert result == {"description": "Slab", "tags": []}
    assert fake.responses.last_payload["store"] is False
    assert fake.responses.last_payload["text"]["format"]["strict"] is True


def test_openai_vision_client_rejects_empty_output() -> None:
    client = OpenAIVisionClient(client=_FakeOpenAI(""))

    with pytest.raises(RuntimeError, match="empty response"):
        asyncio.run(
            client.extract(
                model="gpt-5.2",
                image_data_url="data:image/jpeg;base64,ZmFrZQ==",
                schema={"type": "object"},
                prompt="Describe",
            )
        )


def test_auth_client_authorize_url() -> None:
    client = _auth_client(lambda request: httpx.Response(500))

    url = urlsplit(client.authorize_url("state-1"))
    query = parse_qs(url.query)

    assert url.path == "/authentication/v2/authorize"
    assert query["response_type"] == ["code"]
    assert query["client_id"] == ["client-id"]
    assert query["redirect_uri"] == ["https://app.test/api/auth/callback"]
    assert query["scope"] == ["data:read account:read"]
    assert query["state"] == ["state-1"]


def test_auth_client_exchange_and_refresh() -> None:
    forms: list[dict[str, list[str]]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/authentication/v2/token"
        assert request.headers["authorization"].startswith("Basic ")
        forms.append(parse_qs(request.content.decode()))
        return httpx.Response(
            200,
            json={
                "access_token": "access",
                "expires_in": 3599,
                "refresh_token": "refresh",
                "token_type": "Bearer",
            },
        )

    client = _auth_client(handler)

    grant = asyncio.run(client.exchange_code("code-1"))
    refreshed = asyncio.run(client.refresh("refresh"))

    assert grant.access_token == "access"
    assert grant.expires_in == 3599
    assert refreshed.refresh_token == "refresh"
    assert forms[0]["grant_type"] == ["authorization_code"]
    assert forms[0]["code"] == ["code-1"]
    assert forms[1]["grant_type"] == ["refresh_token"]


def test_auth_client_raises_on_error_status() -> None:
    client = _auth_client(lambda request: httpx.Response(400, json={}))

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.refresh("refresh"))


def test_catalog_client_sends_bearer_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": []})

    client = HttpxCatalogClient(
        base_url="https://aps.test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    session = make_session()

    asyncio.run(client.get_hubs(session))
    asyncio.run(client.get_projects(session, "b.hub/1"))
    url = client.photos_filter_url("p 1")
    asyncio.run(client.post_filter(session, url, {"limit": 5}))

    assert seen[0].url.path == "/project/v1/hubs"
    assert seen[0].headers["authorization"] == "Bearer access-1"
    assert seen[1].url.raw_path.decode().startswith("/project/v1/hubs/b.hub%2F1/")
    assert seen[2].method == "POST"
    assert json.loads(seen[2].content) == {"limit": 5}
    assert url == "https://aps.test/construction/photos/v1/projects/p%201/photos:filter"


def test_catalog_client_raises_upstream_error() -> None:
    client = HttpxCatalogClient(
        base_url="https://aps.test",
        http_client=httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(403, text="forbidden")
            )
        ),
    )

    with pytest.raises(UpstreamHttpError) as excinfo:
        asyncio.run(client.get_hubs(make_session()))

    assert excinfo.value.action == "Failed to fetch hubs"
    assert excinfo.value.status_code == 403
    assert excinfo.value.body == "forbidden"


def test_remote_image_client_downloads_bytes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={"content-type": "image/jpeg; charset=binary"},
            content=b"image-bytes",
        )

    client = HttpxRemoteImageClient(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )

    image = asyncio.run(client.fetch("https://s3.amazonaws.com/a.jpg", 1024))

    assert image.data == b"image-bytes"
    assert image.content_type == "image/jpeg"


def test_remote_image_client_rejects_error_status() -> None:
    client = HttpxRemoteImageClient(
        http_client=httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(404))
        )
    )

    with pytest.raises(ValidationError, match=r"Failed to fetch image \(404\)"):
        asyncio.run(client.fetch("https://s3.amazonaws.com/a.jpg", 1024))


def test_remote_image_client_checks_declared_length_before_reading() -> None:
    stream = _TrackingStream([b"x" * 10])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={"content-length": "4096", "content-type": "image/jpeg"},
            stream=stream,
        )

    client = HttpxRemoteImageClient(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )

    with pytest.raises(ValidationError, match="Image exceeds size limit"):
        asyncio.run(client.fetch("https://s3.amazonaws.com/a.jpg", 1024))

    assert stream.read_chunks == 0


def test_remote_image_client_enforces_limit_while_streaming() -> None:
    stream = _TrackingStream([b"x" * 600, b"x" * 600, b"x" * 600])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, headers={"content-type": "image/jpeg"}, stream=stream
        )

    client = HttpxRemoteImageClient(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )

    with pytest.raises(ValidationError, match="Image exceeds size limit"):
        asyncio.run(client.fetch("https://s3.amazonaws.com/a.jpg", 1024))

    assert stream.read_chunks == 2
