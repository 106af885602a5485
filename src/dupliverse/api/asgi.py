"""ASGI entrypoint for the DupliVerse profile sync API."""

from dupliverse.api.app import create_app
from dupliverse.containers import build_container

app = create_app(build_container())
