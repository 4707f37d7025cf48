"""ASGI application instance."""

from tripstay.api.factory import create_app

app = create_app()
