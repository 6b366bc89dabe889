"""ASGI entry point: ``uvicorn tourmate.api.app:app``."""

from .factory import create_app

app = create_app()
