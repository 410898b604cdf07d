"""
Decision tree CMS FastAPI application entrypoint.

Run with: uvicorn decisiontree.main:app --reload
"""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from decisiontree import auth
from decisiontree.database import Base, engine
from decisiontree.models_db import AnswerModel, ElementModel, StepModel  # noqa: F401 (register tables)
from decisiontree.routes import api_router
from decisiontree.utils.logging import configure_logging


def ensure_dirs():
    """Create the logs directory if missing."""
    root = Path(__file__).resolve().parent.parent
    (root / "logs").mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create DB tables, dirs, and configure logging on startup."""
    ensure_dirs()
    configure_logging()
    Base.metadata.create_all(bind=engine)
    yield
    # Shutdown: nothing to do for SQLite


app = FastAPI(
    title="Decision Tree CMS API",
    description="""Authoring API for decision trees: question and result steps linked by answers.

## Authentication
When `DECISIONTREE_API_KEY` is set, include a key in requests:
- **Header:** `X-API-Key: your-key`
- **Query:** `?api_key=your-key`
- **Bearer:** `Authorization: Bearer your-key`

`DECISIONTREE_VIEWER_API_KEY` authenticates a member without CMS access. Without any key configured,
requests run as a local editor.

`/api/health` and `/api/metrics` do not require a key (for load balancers).
""",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for local React dev (Vite default port 5173)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class AuthAndRateLimitMiddleware(BaseHTTPMiddleware):
    """Optional API key auth and rate limiting for /api/*."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not path.startswith("/api/"):
            return await call_next(request)
        key = auth.extract_key(request)
        try:
            auth._check_rate_limit(auth._get_client_id(request, key))
        except auth.RateLimitExceeded:
            return JSONResponse(status_code=429, content={"detail": "Rate limit exceeded."})
        if auth.auth_enabled() and not auth.skip_auth_path(path):
            if not key:
                return JSONResponse(status_code=401, content={"detail": "Missing API key. Provide X-API-Key or api_key."})
            if auth.member_for_key(key) is None:
                return JSONResponse(status_code=403, content={"detail": "Invalid API key."})
        return await call_next(request)


app.add_middleware(AuthAndRateLimitMiddleware)
app.include_router(api_router)


@app.get("/")
def root():
    return {"service": "Decision Tree CMS", "docs": "/docs", "api": "/api"}
