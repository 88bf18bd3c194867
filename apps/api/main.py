"""FastAPI entrypoint for the watchlist overlap API."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from letterboxd_overlap.db.session import init_engine

from .dependencies import _load_analysis_service, _load_settings
from .routers import api_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_engine(_load_settings())
    yield
    if _load_analysis_service.cache_info().currsize:
        _load_analysis_service().close()


app = FastAPI(
    title="Letterboxd Watchlist Overlap API",
    version="0.1.0",
    description="Validate users, compare watchlists and manage saved groups.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router)


@app.get("/", tags=["info"], summary="API metadata")
def read_index() -> dict[str, str]:
    return {
        "message": "Letterboxd Watchlist Overlap API",
        "documentation": "/docs",
    }
