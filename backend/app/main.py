import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import auth, conflicts, health, roles, scenes, shows, team
from app.core.config import get_settings
from app.core.exceptions import AppError
from app.db.bootstrap import ensure_runtime_schema_compatibility

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_runtime_schema_compatibility()
    logger.info("%s started", settings.project_name)
    yield


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("Unhandled application error on %s: %s", request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(auth.router, prefix=f"{settings.api_prefix}/auth", tags=["auth"])
app.include_router(roles.router, prefix=f"{settings.api_prefix}/roles", tags=["roles"])
app.include_router(team.router, prefix=f"{settings.api_prefix}/team", tags=["team"])
app.include_router(shows.router, prefix=f"{settings.api_prefix}/shows", tags=["shows"])
app.include_router(scenes.router, prefix=f"{settings.api_prefix}/scenes", tags=["scenes"])
app.include_router(conflicts.router, prefix=f"{settings.api_prefix}/conflicts", tags=["conflicts"])
