"""
app/api/routers package marker.
"""

from app.api.routers.policy_import import router as policy_import_router

__all__ = [
    "policy_import_router",
]
