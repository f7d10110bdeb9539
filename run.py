"""ASGI entry point:  uvicorn run:app"""

from tenant_authz.app import app

__all__ = ["app"]
