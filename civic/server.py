"""
Run the API under uvicorn.
"""

from __future__ import annotations

import logging

import uvicorn

from civic.config import get_settings

logger = logging.getLogger(__name__)


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )
    settings = get_settings()
    logger.info("Server running on port %d", settings.port)
    logger.info("API Documentation: http://localhost:%d/api-docs", settings.port)
    uvicorn.run("civic.app:create_app", factory=True, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
