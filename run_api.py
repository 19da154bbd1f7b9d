"""
Shell bridge runner

Starts the local FastAPI bridge in front of the notification engine.
"""
import os
import signal
import sys
import logging
import uvicorn
from dotenv import load_dotenv

# Load .env file
load_dotenv()

logger = logging.getLogger("nudgekit.runner")


def signal_handler(signum, frame):
    """Handle termination signals"""
    logger.info("Received signal %s, shutting down...", signum)
    sys.exit(0)


def main():
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    port = int(os.environ.get("PORT", 8000))

    logger.info("Starting nudgekit bridge on port %s", port)
    logger.info("Database: %s", os.environ.get("NUDGEKIT_DB_PATH", "data/nudgekit.sqlite3"))
    logger.info("Platform: %s", os.environ.get("NUDGEKIT_PLATFORM", "desktop"))

    uvicorn.run(
        "nudgekit.api.app:create_app",
        factory=True,
        host="127.0.0.1",
        port=port,
        log_level="info"
    )


if __name__ == "__main__":
    main()
