"""
app/api/routers package marker.
"""

from app.api.routers.admin_router import router as admin_router
from app.api.routers.anomaly_router import router as anomaly_router
from app.api.routers.fusion_router import router as fusion_router
from app.api.routers.intelligence_router import router as intelligence_router

__all__ = [
    "admin_router",
    "anomaly_router",
    "fusion_router",
    "intelligence_router",
]
