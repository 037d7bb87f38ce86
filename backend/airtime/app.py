"""ASGI entrypoint: ``uvicorn airtime.app:app``."""
from airtime.main import create_app

app = create_app()
