from __future__ import annotations

import uvicorn

from stripwatch.config import load_settings


if __name__ == "__main__":
    settings = load_settings()
    uvicorn.run(
        "stripwatch.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=False,
    )
