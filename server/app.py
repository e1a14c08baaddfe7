"""
Event Recommendation Agent: FastAPI app factory.

Use: uvicorn server.app:app
Or:  from server import app
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_config
from .routes import register_routes
from .state import get_state

API_TITLE = "Event Recommendation Agent API"


def create_app() -> FastAPI:
    """Build FastAPI app with CORS, routes, and startup."""
    app = FastAPI(
        title=API_TITLE,
        description="Hybrid retrieval, graph enrichment, weighted ranking, and bandit-driven slates",
        version="1.0.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_routes(app)

    @app.on_event("startup")
    async def _startup():
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        config = get_config()
        ok, errors = config.validate()
        for error in errors:
            print(f"[startup] WARNING: {error}")
        try:
            state = get_state()
        except Exception as e:
            print(f"[startup] ERROR building application state: {e}")
            raise
        print(f"{API_TITLE} starting...")
        print(f"[startup] Default city: {config.default_city}")
        print(f"[startup] Backends: {', '.join(state.configured_backends()) or 'none'}")
        print(f"[startup] Config valid: {ok}")

    @app.on_event("shutdown")
    async def _shutdown():
        await get_state().close()

    return app


app = create_app()
