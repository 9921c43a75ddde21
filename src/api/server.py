"""
Process entry point: configure logging and serve the API with uvicorn.

Usage:
    culture-connect            # console script
    python -m src.api.server
"""

import os

import uvicorn

from src.common.config import Config
from src.common.logger import setup_logging

from .app import create_app


def main() -> None:
    setup_logging(level=Config.LOG_LEVEL, format=Config.LOG_FORMAT)
    uvicorn.run(
        create_app(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
