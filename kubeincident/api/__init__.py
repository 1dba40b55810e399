"""Read-only query API for kubeincident.

Exposes:
    create_app -- FastAPI application factory.
"""

from kubeincident.api.app import create_app

__all__ = ["create_app"]
