"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from acc_importer.adapters.acc_catalog_client import CatalogClient
from acc_importer.adapters.aps_auth_client import AuthClient
from acc_importer.adapters.remote_image_client import RemoteImage, RemoteImageClient
from acc_importer.config import Settings
from acc_importer.containers import AppContainer
from acc_importer.domain.imports import (
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_RUNNING,
    STEP_TRANSFER,
    ImportRun,
)
from acc_importer.domain.sessions import AccSession, TokenGrant
from acc_importer.domain.storage import BlobDescriptor, BlobListPage, SearchHit
from acc_importer.errors import UpstreamHttpError
from acc_importer.services.catalog import CatalogService
from acc_importer.services.dedup import DedupService
from acc_importer.services.imports import ImportService
from acc_importer.services.indexing import ImageLibraryService, IndexWriter
from acc_importer.services.oauth import OAuthService
from acc_importer.services.pipeline import ImportWorker, RunQueue
from acc_importer.services.sessions import KeyValueStore, SessionService
from acc_importer.services.storage import BlobStorage, SearchIndex
from acc_importer.services.vision import DescriptionService, VisionClient

JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"
NOW_MS = 1_700_000_000_000
ALWAYS_DUE = datetime(2000, 1, 1, tzinfo=UTC)


@dataclass
class InMemoryKeyValueStore(KeyValueStore):
    """In-memory key-value store that records TTLs."""

    values: dict[str, dict[str, object]] = field(default_factory=dict)
    ttls: dict[str, int] = field(default_factory=dict)
    set_calls: int = 0

    def get(self, key: str) -> dict[str, object] | None:
        return self.values.get(key)

    def set(self, key: str, value: dict[str, object], ttl_seconds: int) -> None:
        self.set_calls += 1
        self.values[key] = value
        self.ttls[key] = ttl_seconds

    def delete(self, key: str) -> None:
        self.values.pop(key, None)
        self.ttls.pop(key, None)


@dataclass
class FakeAuthClient(AuthClient):
    """Fake identity provider recording exchanges and refreshes."""

    grant: TokenGrant = field(
        default_factory=lambda: TokenGrant(
            access_token="new-access",
            expires_in=3600,
            refresh_token="new-refresh",
            token_type="Bearer",
        )
    )
    refresh_error: Exception | None = None
    exchange_error: Exception | None = None
    refresh_calls: list[str] = field(default_factory=list)
    exchange_calls: list[str] = field(default_factory=list)

    def authorize_url(self, state: str) -> str:
        return f"https://idp.test/authorize?state={state}"

    async def exchange_code(self, code: str) -> TokenGrant:
        self.exchange_calls.append(code)
        if self.exchange_error is not None:
            raise self.exchange_error
        return self.grant

    async def refresh(self, refresh_token: str) -> TokenGrant:
        self.refresh_calls.append(refresh_token)
        if self.refresh_error is not None:
            raise self.refresh_error
        return self.grant


@dataclass
class FakeCatalogClient(CatalogClient):
    """Fake catalog API returning queued pages."""

    hubs: dict[str, object] = field(default_factory=dict)
    projects: dict[str, object] = field(default_factory=dict)
    pages: list[dict[str, object]] = field(default_factory=list)
    repeat_last_page: bool = False
    error: UpstreamHttpError | None = None
    posts: list[tuple[str, object]] = field(default_factory=list)

    async def get_hubs(self, session: AccSession) -> dict[str, object]:
        if self.error is not None:
            raise self.error
        return self.hubs

    async def get_projects(self, session: AccSession, hub_id: str) -> dict[str, object]:
        if self.error is not None:
            raise self.error
        return self.projects

    def photos_filter_url(self, project_id: str) -> str:
        return f"https://api.test/projects/{project_id}/photos:filter"

    async def post_filter(
        self, session: AccSession, url: str, body: object
    ) -> dict[str, object]:
        if self.error is not None:
            raise self.error
        self.posts.append((url, body))
        if self.repeat_last_page and len(self.pages) == 1:
            return self.pages[0]
        return self.pages.pop(0) if self.pages else {}


@dataclass
class _StoredBlob:
    data: bytes
    content_type: str


@dataclass
class InMemoryBlobStorage(BlobStorage):
    """In-memory blob storage with offset cursors and call counters."""

    blobs: dict[str, _StoredBlob] = field(default_factory=dict)
    list_calls: int = 0
    head_calls: int = 0
    head_error: Exception | None = None
    put_error: Exception | None = None
    put_calls: list[dict[str, object]] = field(default_factory=list)

    def add(self, pathname: str, data: bytes = JPEG_BYTES) -> None:
        self.blobs[pathname] = _StoredBlob(data=data, content_type="image/jpeg")

    def list(self, prefix: str, limit: int, cursor: str | None = None) -> BlobListPage:
        self.list_calls += 1
        names = sorted(name for name in self.blobs if name.startswith(prefix))
        offset = int(cursor) if cursor else 0
        page = names[offset : offset + limit]
        has_more = offset + limit < len(names)
        return BlobListPage(
            pathnames=page,
            has_more=has_more,
            cursor=str(offset + limit) if has_more else None,
        )

    def head(self, pathname: str) -> BlobDescriptor | None:
        self.head_calls += 1
        if self.head_error is not None:
            raise self.head_error
        blob = self.blobs.get(pathname)
        if blob is None:
            return None
        return _descriptor(pathname, blob)

    def put(  # noqa: PLR0913
        self,
        pathname: str,
        data: bytes,
        content_type: str,
        *,
        add_random_suffix: bool = False,
        allow_overwrite: bool = False,
    ) -> BlobDescriptor:
        self.put_calls.append(
            {
                "pathname": pathname,
                "add_random_suffix": add_random_suffix,
                "allow_overwrite": allow_overwrite,
            }
        )
        if self.put_error is not None:
            raise self.put_error
        if pathname in self.blobs and not allow_overwrite:
            raise RuntimeError("This blob already exists")
        blob = _StoredBlob(data=data, content_type=content_type)
        self.blobs[pathname] = blob
        return _descriptor(pathname, blob)

    def delete(self, pathname: str) -> None:
        self.blobs.pop(pathname, None)


def _descriptor(pathname: str, blob: _StoredBlob) -> BlobDescriptor:
    url = f"https://blob.test/{pathname}"
    return BlobDescriptor(
        pathname=pathname,
        url=url,
        download_url=f"{url}?download=",
        content_type=blob.content_type,
        size=len(blob.data),
    )


@dataclass
class InMemorySearchIndex(SearchIndex):
    """In-memory search index returning preset hits."""

    records: dict[str, dict[str, object]] = field(default_factory=dict)
    hits: list[SearchHit] = field(default_factory=list)
    upsert_error: Exception | None = None
    queries: list[tuple[str, bool]] = field(default_factory=list)

    def upsert(
        self, id: str, content: dict[str, object], metadata: dict[str, object]
    ) -> None:
        if self.upsert_error is not None:
            raise self.upsert_error
        self.records[id] = {"content": content, "metadata": metadata}

    def search(self, query: str, rerank: bool = False) -> list[SearchHit]:
        self.queries.append((query, rerank))
        return self.hits

    def delete(self, id: str) -> None:
        self.records.pop(id, None)


@dataclass
class InMemoryRunQueue(RunQueue):
    """In-memory durable queue."""

    runs: dict[str, ImportRun] = field(default_factory=dict)

    def enqueue(self, payload: dict[str, object]) -> str:
        run_id = f"run-{uuid4().hex[:8]}"
        self.runs[run_id] = ImportRun(
            id=run_id,
            status=STATUS_PENDING,
            step=STEP_TRANSFER,
            attempt=1,
            payload=payload,
            result={},
            run_after=ALWAYS_DUE,
        )
        return run_id

    def claim_due(
        self, now: datetime, limit: int, lease_until: datetime
    ) -> list[ImportRun]:
        due = [
            run
            for run in self.runs.values()
            if run.status in (STATUS_PENDING, STATUS_RUNNING) and run.run_after <= now
        ][:limit]
        claimed = []
        for run in due:
            reclaimed = run.status == STATUS_RUNNING
            updated = replace(
                run,
                status=STATUS_RUNNING,
                attempt=run.attempt + 1 if reclaimed else run.attempt,
                run_after=lease_until,
                step_started_at=run.step_started_at or now,
            )
            self.runs[run.id] = updated
            claimed.append(updated)
        return claimed

    def get(self, run_id: str) -> ImportRun | None:
        return self.runs.get(run_id)

    def advance(self, run_id: str, step: str, result: dict[str, object]) -> None:
        run = self.runs[run_id]
        self.runs[run_id] = replace(
            run,
            status=STATUS_PENDING,
            step=step,
            attempt=1,
            result=result,
            run_after=ALWAYS_DUE,
            step_started_at=None,
            last_error=None,
        )

    def reschedule(
        self, run_id: str, attempt: int, run_after: datetime, error: str
    ) -> None:
        run = self.runs[run_id]
        self.runs[run_id] = replace(
            run,
            status=STATUS_PENDING,
            attempt=attempt,
            run_after=run_after,
            step_started_at=None,
            last_error=error,
        )

    def complete(self, run_id: str, result: dict[str, object]) -> None:
        run = self.runs[run_id]
        self.runs[run_id] = replace(
            run, status=STATUS_COMPLETED, result=result, payload={}
        )

    def fail(self, run_id: str, error: str) -> None:
        run = self.runs[run_id]
        self.runs[run_id] = replace(
            run, status=STATUS_FAILED, last_error=error, payload={}
        )


@dataclass
class FakeRemoteImageClient(RemoteImageClient):
    """Fake remote fetch that counts calls."""

    image: RemoteImage = field(
        default_factory=lambda: RemoteImage(data=JPEG_BYTES, content_type="image/jpeg")
    )
    error: Exception | None = None
    calls: list[str] = field(default_factory=list)

    async def fetch(self, url: str, max_bytes: int) -> RemoteImage:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.image


@dataclass
class FakeVisionClient(VisionClient):
    """Fake vision client returning a fixed description."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "description": "Rebar placed for a concrete slab on level 2.",
            "tags": ["rebar", "slab"],
        }
    )
    error: Exception | None = None
    prompts: list[str] = field(default_factory=list)

    async def extract(
        self,
        *,
        model: str,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.payload


def make_session(
    expires_at: int = NOW_MS + 3_600_000,
    refresh_token: str | None = "refresh-1",
) -> AccSession:
    return AccSession(
        access_token="access-1",
        expires_at=expires_at,
        refresh_token=refresh_token,
        token_type="Bearer",
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        acc_client_id="client-id",
        acc_client_secret="client-secret",
        acc_callback_url="http://testserver/api/auth/callback",
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        openai_api_key="openai-key",
        environment="test",
    )


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def auth_client() -> FakeAuthClient:
    return FakeAuthClient()


@pytest.fixture
def catalog_client() -> FakeCatalogClient:
    return FakeCatalogClient()


@pytest.fixture
def storage() -> InMemoryBlobStorage:
    return InMemoryBlobStorage()


@pytest.fixture
def search_index() -> InMemorySearchIndex:
    return InMemorySearchIndex()


@pytest.fixture
def run_queue() -> InMemoryRunQueue:
    return InMemoryRunQueue()


@pytest.fixture
def remote_client() -> FakeRemoteImageClient:
    return FakeRemoteImageClient()


@pytest.fixture
def vision_client() -> FakeVisionClient:
    return FakeVisionClient()


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    kv_store: InMemoryKeyValueStore,
    auth_client: FakeAuthClient,
    catalog_client: FakeCatalogClient,
    storage: InMemoryBlobStorage,
    search_index: InMemorySearchIndex,
    run_queue: InMemoryRunQueue,
    remote_client: FakeRemoteImageClient,
    vision_client: FakeVisionClient,
) -> AppContainer:
    session_service = SessionService(
        store=kv_store, auth_client=auth_client, clock=lambda: NOW_MS
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        session_service=session_service,
        oauth_service=OAuthService(
            auth_client=auth_client, session_service=session_service
        ),
        catalog_service=CatalogService(catalog_client),
        dedup_service=DedupService(storage),
        import_service=ImportService(
            storage=storage, remote_client=remote_client, queue=run_queue
        ),
        image_library_service=ImageLibraryService(storage=storage, index=search_index),
        run_queue=run_queue,
        import_worker=ImportWorker(
            queue=run_queue,
            storage=storage,
            description_service=DescriptionService(
                client=vision_client, model="test-model"
            ),
            index_writer=IndexWriter(search_index),
        ),
        close_resources=close_resources,
    )
