"""ASGI entrypoint for the ACC photo import API."""

from acc_importer.api.app import create_app
from acc_importer.containers import build_container

app = create_app(build_container())
