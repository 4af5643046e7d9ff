#!/usr/bin/env python3
import logging
import os

import uvicorn

from opsdesk.app import create_app

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create the FastAPI app
app = create_app()


if __name__ == "__main__":
    host = os.getenv("OPSDESK_HOST", "0.0.0.0")
    port = int(os.getenv("OPSDESK_PORT", "8000"))
    reload_enabled = os.getenv("OPSDESK_DEV_MODE", "false").lower() == "true"

    logging.getLogger(__name__).info("Starting OpsDesk on %s:%s", host, port)
    uvicorn.run("main:app", host=host, port=port, reload=reload_enabled)
