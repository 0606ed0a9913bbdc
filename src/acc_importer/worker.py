"""Entry point for the import worker process."""

import asyncio
import logging

from acc_importer.app_logging import configure_logging
from acc_importer.config import Settings
from acc_importer.containers import build_container

_logger = logging.getLogger(__name__)


async def run_worker(settings: Settings | None = None) -> None:
    """Poll the run queue until the process is stopped."""
    container = build_container(settings)
    _logger.info(
        "Import worker started",
        extra={"poll_seconds": container.settings.worker_poll_seconds},
    )
    try:
        await container.import_worker.run_forever(
            container.settings.worker_poll_seconds
        )
    finally:
        await container.close_resources()


def main() -> None:
    """Console script entry point."""
    settings = Settings()
    configure_logging(settings.log_level)
    try:
        asyncio.run(run_worker(settings))
    except KeyboardInterrupt:
        _logger.info("Import worker stopped")


if __name__ == "__main__":
    main()
