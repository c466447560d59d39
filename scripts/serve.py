#!/usr/bin/env python3
"""
Start the API with uvicorn on PORT.
Run from the project root: python -m scripts.serve
"""
import uvicorn

from hotspot.core.config import settings


def main():
    uvicorn.run(
        "hotspot.main:app",
        host="0.0.0.0",
        port=settings.port,
        workers=settings.uvicorn_workers,
        timeout_keep_alive=30,
    )


if __name__ == "__main__":
    main()
