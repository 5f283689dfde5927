"""Run the Trailseal API server."""

import uvicorn

from trailseal.api.config import Settings

if __name__ == "__main__":
    settings = Settings()
    uvicorn.run(
        "trailseal.api:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
