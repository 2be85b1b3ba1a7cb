"""
HTTP server entrypoint for Artbreaker.

Runs `artbreaker.api.http_api:app` under uvicorn. Host, port and log level come
from `ARTBREAKER_HOST`, `ARTBREAKER_PORT` and `ARTBREAKER_LOG_LEVEL`.
"""

from dotenv import load_dotenv

load_dotenv()

import logging
import os

import uvicorn

from artbreaker.api.http_api import app


def main():
    log_level = os.getenv("ARTBREAKER_LOG_LEVEL", "info").lower()
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        app,
        host=os.getenv("ARTBREAKER_HOST", "127.0.0.1"),
        port=int(os.getenv("ARTBREAKER_PORT", "8000")),
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
