# src/dcron/api/__init__.py
"""
Status API for dcron (FastAPI).

- app: application factory + lifespan running the scheduler
- routes: read-only endpoints (health, task stats)
- deps: dependency injection helpers
"""

from .app import create_app

__all__ = ["create_app"]
