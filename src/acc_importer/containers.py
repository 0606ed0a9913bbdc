"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from acc_importer.adapters.acc_catalog_client import HttpxCatalogClient
from acc_importer.adapters.aps_auth_client import HttpxApsAuthClient
from acc_importer.adapters.openai_vision_client import OpenAIVisionClient
from acc_importer.adapters.remote_image_client import HttpxRemoteImageClient
from acc_importer.adapters.supabase_blob_storage import SupabaseBlobStorage
from acc_importer.adapters.supabase_kv_store import SupabaseKeyValueStore
from acc_importer.adapters.supabase_run_queue import SupabaseRunQueue
from acc_importer.adapters.supabase_search_index import SupabaseSearchIndex
from acc_importer.config import Settings
from acc_importer.services.catalog import CatalogService
from acc_importer.services.dedup import DedupService
from acc_importer.services.imports import ImportService
from acc_importer.services.indexing import ImageLibraryService, IndexWriter
from acc_importer.services.oauth import OAuthService
from acc_importer.services.pipeline import ImportWorker, RunQueue
from acc_importer.services.sessions import SessionService
from acc_importer.services.vision import DescriptionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_service: SessionService
    oauth_service: OAuthService
    catalog_service: CatalogService
    dedup_service: DedupService
    import_service: ImportService
    image_library_service: ImageLibraryService
    run_queue: RunQueue
    import_worker: ImportWorker
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    kv_store = SupabaseKeyValueStore(supabase_client)
    storage = SupabaseBlobStorage(supabase_client, resolved_settings.storage_bucket)
    search_index = SupabaseSearchIndex(supabase_client)
    run_queue = SupabaseRunQueue(supabase_client)

    auth_client = HttpxApsAuthClient.create(
        client_id=resolved_settings.acc_client_id,
        client_secret=resolved_settings.acc_client_secret,
        callback_url=resolved_settings.acc_callback_url,
        base_url=resolved_settings.aps_base_url,
    )
    catalog_client = HttpxCatalogClient.create(resolved_settings.aps_base_url)
    remote_client = HttpxRemoteImageClient.create()
    vision_client = OpenAIVisionClient.create(resolved_settings.openai_api_key)

    session_service = SessionService(store=kv_store, auth_client=auth_client)
    oauth_service = OAuthService(
        auth_client=auth_client, session_service=session_service
    )
    catalog_service = CatalogService(catalog_client)
    dedup_service = DedupService(storage)
    import_service = ImportService(
        storage=storage, remote_client=remote_client, queue=run_queue
    )
    index_writer = IndexWriter(search_index)
    image_library_service = ImageLibraryService(storage=storage, index=search_index)
    import_worker = ImportWorker(
        queue=run_queue,
        storage=storage,
        description_service=DescriptionService(
            client=vision_client, model=resolved_settings.openai_model
        ),
        index_writer=index_writer,
        batch_size=resolved_settings.worker_batch_size,
        lease_seconds=resolved_settings.worker_lease_seconds,
    )

    async def close_resources() -> None:
        await auth_client.close()
        await catalog_client.close()
        await remote_client.close()
        await vision_client.close()

    return AppContainer(
        settings=resolved_settings,
        session_service=session_service,
        oauth_service=oauth_service,
        catalog_service=catalog_service,
        dedup_service=dedup_service,
        import_service=import_service,
        image_library_service=image_library_service,
        run_queue=run_queue,
        import_worker=import_worker,
        close_resources=close_resources,
    )
