#!/usr/bin/env python
"""
Run the rate card pricing API (FastAPI on uvicorn).

Usage:
    python scripts/run_api.py [--reload]

Host and port come from RATECARD_HOST / RATECARD_PORT.
"""
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

import uvicorn

from ratecard.config.settings import get_settings, configure_logging


def main():
    settings = get_settings()
    configure_logging(settings)
    print(f"Starting Rate Card Pricing API on {settings.api_host}:{settings.api_port}...")
    uvicorn.run(
        "ratecard.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload='--reload' in sys.argv,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
