"""ASGI entry point: ``hypercorn scenes.asgi:app``."""

from scenes.app_factory import create_app

app = create_app()
