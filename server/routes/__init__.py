"""Register all route modules on the FastAPI app."""

from fastapi import FastAPI

from .events import router as events_router
from .metrics import router as metrics_router
from .policies import router as policies_router
from .recommend import router as recommend_router
from .root import router as root_router


def register_routes(app: FastAPI) -> None:
    """Attach all API routers to the app."""
    app.include_router(root_router)
    app.include_router(recommend_router, prefix="/api", tags=["recommend"])
    app.include_router(policies_router, prefix="/api/policies", tags=["policies"])
    app.include_router(events_router, prefix="/api/events", tags=["events"])
    app.include_router(metrics_router, prefix="/api/metrics", tags=["metrics"])
