"""
FastAPI application for the FilmWatch worker: health, manual runs and the bot webhook
"""
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, BackgroundTasks, Header, Request
from pydantic import BaseModel

from .bot import CommandHandler
from .config import Settings, get_settings, settings
from .exceptions import RunInProgressError, StoreIOError
from .logging_config import setup_logging
from .models import RunResult
from .pipeline import FilmPipeline, PipelineConfig
from .publisher import TelegramPublisher
from .scheduler import SchedulerService
from .scraper.session import BrowserSession
from .storage import SeenSetStore

logger = setup_logging(__name__)

SERVICE_START_TIME = time.time()


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    run_in_progress: bool
    seen_set: Dict[str, Any]
    scheduler: Dict[str, Any]
    last_run: Optional[RunResult] = None


class WorkerServices:
    """Everything a running worker owns, started and stopped together"""

    def __init__(
        self,
        store: SeenSetStore,
        pipeline: FilmPipeline,
        scheduler: SchedulerService,
        commands: Optional[CommandHandler] = None,
        publisher: Optional[TelegramPublisher] = None,
        session: Optional[BrowserSession] = None,
    ):
        self.store = store
        self.pipeline = pipeline
        self.scheduler = scheduler
        self.commands = commands
        self.publisher = publisher
        self.session = session

    @classmethod
    def from_settings(cls, cfg: Optional[Settings] = None) -> "WorkerServices":
        cfg = cfg or get_settings()
        store = SeenSetStore(cfg.DATA_PATH, max_entries=cfg.MAX_TRACKED_FILMS)
        session = BrowserSession(user_agent=cfg.SCRAPER_USER_AGENT)
        publisher = TelegramPublisher(
            bot_token=cfg.TELEGRAM_BOT_TOKEN,
            chat_id=cfg.TELEGRAM_CHAT_ID,
            api_url=cfg.TELEGRAM_API_URL,
        )
        pipeline = FilmPipeline(session, publisher, store, PipelineConfig.from_settings(cfg))
        scheduler = SchedulerService(
            pipeline,
            cron_schedule=cfg.CRON_SCHEDULE,
            enabled=cfg.ENABLE_SCHEDULER,
        )
        return cls(
            store=store,
            pipeline=pipeline,
            scheduler=scheduler,
            commands=CommandHandler(pipeline, publisher),
            publisher=publisher,
            session=session,
        )

    async def startup(self):
        self.store.initialize()
        if self.session is not None:
            await self.session.start()
        if self.publisher is not None:
            await self.publisher.connect()
        await self.scheduler.start()

    async def shutdown(self):
        await self.scheduler.stop()
        if self.publisher is not None:
            await self.publisher.close()
        if self.session is not None:
            await self.session.close()


def create_app(services: Optional[WorkerServices] = None) -> FastAPI:
    """Build the API; real services are assembled from settings at start-up"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.APP_NAME} API")
        worker = services or WorkerServices.from_settings()
        await worker.startup()
        app.state.services = worker
        yield
        logger.info(f"Shutting down {settings.APP_NAME} API")
        await worker.shutdown()

    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="Film discovery and announcement worker",
        version=settings.VERSION,
        lifespan=lifespan,
    )

    def get_services(request: Request) -> WorkerServices:
        return request.app.state.services

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Liveness plus seen-set, scheduler and last-run details"""
        worker = get_services(request)
        status = "healthy"
        try:
            seen_set = worker.store.stats()
        except StoreIOError as e:
            status = "unhealthy"
            seen_set = {"error": str(e)}

        last_run = worker.pipeline.last_result
        if status == "healthy" and last_run is not None and not last_run.success:
            status = "degraded"

        return HealthResponse(
            status=status,
            version=settings.VERSION,
            uptime_seconds=round(time.time() - SERVICE_START_TIME, 2),
            run_in_progress=worker.pipeline.is_running,
            seen_set=seen_set,
            scheduler=worker.scheduler.status(),
            last_run=last_run,
        )

    @app.post("/runs", response_model=RunResult)
    async def trigger_run(request: Request):
        """Run the pipeline now and return its counters"""
        worker = get_services(request)
        try:
            return await worker.pipeline.run("manual")
        except RunInProgressError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except StoreIOError as e:
            logger.error(f"Manual run failed on seen-set I/O: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/runs/last", response_model=RunResult)
    async def last_run(request: Request):
        result = get_services(request).pipeline.last_result
        if result is None:
            raise HTTPException(status_code=404, detail="No run has completed yet")
        return result

    @app.post("/webhook")
    async def telegram_webhook(
        request: Request,
        background_tasks: BackgroundTasks,
        x_telegram_bot_api_secret_token: Optional[str] = Header(default=None),
    ):
        """Telegram update endpoint; commands are answered after the response"""
        if settings.WEBHOOK_SECRET and x_telegram_bot_api_secret_token != settings.WEBHOOK_SECRET:
            raise HTTPException(status_code=403, detail="Invalid webhook secret")

        worker = get_services(request)
        if worker.commands is None:
            raise HTTPException(status_code=503, detail="Bot commands are not configured")

        update = await request.json()
        background_tasks.add_task(worker.commands.handle_update, update)
        return {"ok": True}

    return app


app = create_app()
