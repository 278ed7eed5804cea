import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tripboard.api.routers.auth import router as auth_router
from tripboard.api.routers.itineraries import router as itineraries_router
from tripboard.core.security import WorkspaceRegistry
from tripboard.core.settings import Settings, get_settings

load_dotenv()


def create_app(settings: Settings | None = None, transport=None) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    workspaces = WorkspaceRegistry(settings, transport=transport)

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        yield
        await workspaces.aclose()

    application = FastAPI(title="Tripboard Planner", lifespan=lifespan)

    # CORS: local dev frontends plus anything listed in ALLOWED_ORIGINS
    allowed_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    allowed_origins.extend(settings.allowed_origins)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    application.state.workspaces = workspaces

    @application.get("/healthz", tags=["health"])
    def healthz():
        return {"status": "ok"}

    application.include_router(auth_router)
    application.include_router(itineraries_router)
    return application


app = create_app()

# To run the app:
# uvicorn tripboard.main:app --reload
