#!/usr/bin/env python3
"""
Event Recommendation Agent server: entrypoint for uvicorn server.server:app.

Run: python -m server.server
"""

from .app import app

if __name__ == "__main__":
    import uvicorn

    from .config import get_config

    config = get_config()
    uvicorn.run(app, host=config.host, port=config.port)
