from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from album_keeper.core.config import load_config
from album_keeper.core.database import init_database
from album_keeper.core.logging import setup_logging_from_config
from album_keeper.domain.exceptions import AlbumKeeperError


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = load_config()
    setup_logging_from_config(config.logging)
    init_database()
    logger.info("Album Keeper API started")
    yield


app = FastAPI(title="Album Keeper Web API", version="1.0.0", lifespan=lifespan)

# CORS: [web] allowed_origins, overridable with ALLOWED_ORIGINS
allowed_origins = load_config().web.allowed_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Every error leaves the API as {"error": message}
@app.exception_handler(AlbumKeeperError)
async def album_keeper_error_handler(request: Request, exc: AlbumKeeperError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.debug(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "type": type(exc).__name__},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = ", ".join(
        ".".join(str(part) for part in error["loc"] if part != "body")
        for error in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"error": f"Invalid request: {fields}" if fields else "Invalid request"},
    )


# Include routers
from web.backend.routers import albums, archive, saved, tracks

app.include_router(archive.router, prefix="/api", tags=["archive"])
app.include_router(albums.router, prefix="/api", tags=["albums"])
app.include_router(tracks.router, prefix="/api", tags=["tracks"])
app.include_router(saved.router, prefix="/api", tags=["saved"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
