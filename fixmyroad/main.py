from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from fixmyroad import __version__, db
from fixmyroad.config import Settings, load_settings
from fixmyroad.errors import register_error_handlers
from fixmyroad.routers import health, near, reports, stats
from fixmyroad.store import ReportStore
from fixmyroad.uploads import UploadStorage


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ReportStore] = None,
    uploads: Optional[UploadStorage] = None,
) -> FastAPI:
    """
    Build the API. With an explicit store the app uses it as-is; otherwise
    it connects to MongoDB on startup and closes the client on shutdown.
    """
    settings = settings or load_settings()
    uploads = uploads or UploadStorage(settings.uploads_dir, settings.max_upload_bytes)
    uploads.ensure_dir()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        if app.state.store is None:
            client, database = await db.connect(settings)
            app.state.store = ReportStore(database[settings.collection_name])
            await app.state.store.ensure_indexes()
        try:
            yield
        finally:
            db.close(client)

    app = FastAPI(title="FixMyRoad API", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.uploads = uploads

    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", include_in_schema=False)
    async def index():
        page = settings.public_dir / "index.html"
        if page.is_file():
            return FileResponse(page)
        return PlainTextResponse("FixMyRoad API is running")

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(reports.router, prefix="/reports", tags=["reports"])
    app.include_router(near.router, prefix="/near", tags=["reports"])
    app.include_router(stats.router, prefix="/stats", tags=["stats"])

    app.mount("/uploads", StaticFiles(directory=uploads.directory), name="uploads")
    # Optional frontend; mounted last so API routes win
    if settings.public_dir.is_dir():
        app.mount("/", StaticFiles(directory=settings.public_dir, html=True), name="public")

    return app
