"""
Main worker application: serves the API whose lifespan runs the scheduler
"""
import asyncio
import signal
import sys

import uvicorn

from .config import settings
from .main import app
from .logging_config import setup_logging

logger = setup_logging(__name__)


class WorkerApplication:
    """Main worker application manager"""

    def __init__(self):
        self.server = None
        self.shutdown_event = asyncio.Event()

    async def start(self):
        logger.info(f"🚀 Starting {settings.APP_NAME}")
        config = uvicorn.Config(
            app,
            host=settings.API_HOST,
            port=settings.API_PORT,
            log_level="info",
            access_log=False,
        )
        self.server = uvicorn.Server(config)
        # Signals are handled here, not by uvicorn
        self.server.install_signal_handlers = lambda: None

        serve_task = asyncio.create_task(self.server.serve(), name="api-server")
        stop_task = asyncio.create_task(self.shutdown_event.wait(), name="shutdown-wait")
        try:
            await asyncio.wait({serve_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            await self.stop(serve_task, stop_task)

    async def stop(self, *tasks):
        logger.info(f"🛑 Stopping {settings.APP_NAME}")
        if self.server is not None:
            self.server.should_exit = True
        await asyncio.gather(*tasks[:1], return_exceptions=True)
        for task in tasks[1:]:
            task.cancel()
        logger.info("✅ Worker application stopped")

    def signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        logger.info(f"Received signal {signum}, initiating shutdown...")
        self.shutdown_event.set()


async def main():
    worker = WorkerApplication()

    for sig in (signal.SIGTERM, signal.SIGINT):
        signal.signal(sig, worker.signal_handler)

    await worker.start()


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
    except Exception as e:
        logger.error(f"Application failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
