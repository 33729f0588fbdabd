"""ASGI entrypoint for the FOOPTRA API."""

from fooptra.api.app import create_app
from fooptra.containers import build_container

app = create_app(build_container())
