"""HTTP surface of the factory workflow engine."""

from .app import create_app, ensure_demo_data

__all__ = ["create_app", "ensure_demo_data"]
