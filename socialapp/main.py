"""ASGI entry point: ``uvicorn socialapp.main:app``."""

from socialapp.app import create_app

app = create_app()
