"""Main FastAPI application."""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.logging import setup_logging
from app.db.database import init_db
from app.api import calls, functions, health


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    await init_db()
    yield


app = FastAPI(
    title=settings.assistant_name,
    description="Voice and chat transaction entry for Khorcha",
    version="0.1.0",
    lifespan=lifespan,
)

# The functions are called straight from the browser
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

app.include_router(health.router, tags=["health"])
app.include_router(functions.router, prefix="/functions/v1", tags=["functions"])
app.include_router(calls.router, tags=["calls"])


@app.get("/")
async def root():
    return {
        "message": f"{settings.assistant_name} API",
        "version": "0.1.0",
    }


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run("app.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
