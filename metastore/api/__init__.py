"""
HTTP API for MetaStore.

A thin FastAPI layer over AttributeStores; it adds no semantics of its own.
"""

from .app import create_app

__all__ = ["create_app"]
