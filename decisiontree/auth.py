"""
Authentication: optional API keys, member resolution and rate limiting.

- If DECISIONTREE_API_KEY is set, requests must include X-API-Key: <key> (or Authorization: Bearer <key>).
  The admin key runs as an ADMIN member; DECISIONTREE_VIEWER_API_KEY runs as a member with no CMS access.
- With no key configured every request runs as a local editor holding CMS_ACCESS_DecisionTree.
- Health can be excluded from auth for load balancers.
- Rate limiting: in-memory, per-IP or per-API-key; configurable requests per window.
"""

import logging
import os
import time
from typing import Optional

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader, APIKeyQuery, HTTPAuthorizationCredentials, HTTPBearer

from decisiontree.models.member import ADMIN_PERMISSION, CMS_ACCESS_PERMISSION, Member
from decisiontree.utils.logging import log_permission_denied

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"
API_KEY_ENV = os.getenv("DECISIONTREE_API_KEY", "").strip()
VIEWER_API_KEY_ENV = os.getenv("DECISIONTREE_VIEWER_API_KEY", "").strip()
# Rate limit: max requests per window per identifier (IP or API key)
RATE_LIMIT_REQUESTS = int(os.environ.get("DECISIONTREE_RATE_LIMIT_REQUESTS", "120"))
RATE_LIMIT_WINDOW_SEC = int(os.environ.get("DECISIONTREE_RATE_LIMIT_WINDOW_SEC", "60"))

api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)
api_key_query = APIKeyQuery(name="api_key", auto_error=False)
bearer = HTTPBearer(auto_error=False)

# In-memory rate limit: key -> (window_start_sec, count)
_rate_limit_store: dict[str, tuple[float, int]] = {}

LOCAL_EDITOR = Member(email="local-editor", permissions={CMS_ACCESS_PERMISSION})


class RateLimitExceeded(Exception):
    pass


def _get_client_id(request: Request, api_key: Optional[str]) -> str:
    """Identify client for rate limiting: API key if present, else X-Forwarded-For or client host."""
    if api_key:
        return f"key:{api_key[:16]}"
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


def _check_rate_limit(client_id: str) -> None:
    """Raise RateLimitExceeded if over limit. Otherwise increment and allow."""
    if RATE_LIMIT_REQUESTS <= 0:
        return
    now = time.time()
    if client_id not in _rate_limit_store:
        _rate_limit_store[client_id] = (now, 1)
        return
    start, count = _rate_limit_store[client_id]
    if now - start >= RATE_LIMIT_WINDOW_SEC:
        _rate_limit_store[client_id] = (now, 1)
        return
    count += 1
    _rate_limit_store[client_id] = (start, count)
    if count > RATE_LIMIT_REQUESTS:
        raise RateLimitExceeded(client_id)


def extract_key(request: Request) -> Optional[str]:
    """API key from header, query, or Bearer token."""
    key = request.headers.get(API_KEY_HEADER) or request.query_params.get("api_key")
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        key = key or auth[7:]
    return key


def auth_enabled() -> bool:
    return bool(API_KEY_ENV)


def member_for_key(key: Optional[str]) -> Optional[Member]:
    """Map an API key to the member it authenticates. None if the key is unknown."""
    if not auth_enabled():
        return LOCAL_EDITOR
    if key and key == API_KEY_ENV:
        return Member(email="api-admin", permissions={ADMIN_PERMISSION})
    if key and VIEWER_API_KEY_ENV and key == VIEWER_API_KEY_ENV:
        return Member(email="api-viewer", permissions=set())
    return None


async def get_current_member(
    request: Request,
    header_key: Optional[str] = Security(api_key_header),
    query_key: Optional[str] = Security(api_key_query),
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer),
) -> Member:
    """Dependency: resolve the member the request runs as."""
    key = header_key or query_key or (credentials.credentials if credentials else None)
    if not auth_enabled():
        return LOCAL_EDITOR
    if not key:
        raise HTTPException(status_code=401, detail="Missing API key. Provide X-API-Key header or api_key query.")
    member = member_for_key(key)
    if member is None:
        raise HTTPException(status_code=403, detail="Invalid API key.")
    return member


def skip_auth_path(path: str) -> bool:
    """Paths that do not require API key (health for load balancers)."""
    return path.rstrip("/") in ("/api/health", "/api/metrics")


def require_permission(allowed: bool, action: str, record: str, record_id: Optional[int], member: Member) -> None:
    """Raise 403 (and log) when a permission check returned False."""
    if allowed:
        return
    log_permission_denied(logger, action, record, record_id, member.email if member else None)
    raise HTTPException(status_code=403, detail=f"Not allowed to {action} {record}.")
