#!/usr/bin/env python3
"""Serve the attendance ledger API with Uvicorn."""

import os

import uvicorn
from dotenv import load_dotenv

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def main():
    load_dotenv(os.path.join(PROJECT_ROOT, ".env"))

    host = os.getenv("APP_HOST", "127.0.0.1")
    port = int(os.getenv("APP_PORT", "8000"))
    # Reload is for local work only; deployments set APP_RELOAD=false
    reload = os.getenv("APP_RELOAD", "false").lower() in ("true", "1", "t")
    log_level = os.getenv("APP_LOG_LEVEL", os.getenv("LOG_LEVEL", "info")).lower()

    print(f"Attendance ledger API on http://{host}:{port} (reload={reload}, log level {log_level})")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
        app_dir=PROJECT_ROOT,
        reload_dirs=[PROJECT_ROOT] if reload else None,
    )


if __name__ == "__main__":
    main()
