#!/usr/bin/env python3
"""
Production startup script for Chamber Content Service
"""
import sys
import os
from pathlib import Path

# backend 디렉터리를 Python 경로에 추가
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", 8000))
    host = "0.0.0.0"

    print(f"Starting Chamber Content Service on {host}:{port}")

    uvicorn.run(
        "chamber.main:app",
        host=host,
        port=port,
        log_level="info",
        access_log=True,
        reload=False  # Production mode
    )
