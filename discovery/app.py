from __future__ import annotations

import logging
import os
import time
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.sessions import SessionMiddleware

from .analytics.aggregator import compute_analytics
from .analytics.store import get_events, record_event
from .auth.dependencies import get_current_user_id, require_admin, require_user
from .auth.users import authenticate
from .db.client import get_client
from .feed.config import DEFAULT_FEED_CONFIG
from .feed.dealbreakers import DEAL_BREAKERS
from .feed.mixed import handle_mixed_feed
from .feed.models import FeedResponse, LoginRequest
from .feed.params import FeedParams
from .feed.standard import SPECIAL_LIST_RPCS, FeedError, fetch_special_list, fetch_standard_feed

logger = logging.getLogger(__name__)

app = FastAPI(title="Local Business Discovery API", version="1.0.0")
app.add_middleware(
    SessionMiddleware,
    secret_key=os.environ.get("SESSION_SECRET", "discovery-secret-change-in-production"),
)


def get_db() -> Any:
    return get_client()


def _listing_response(body: FeedResponse, cache_control: str) -> JSONResponse:
    response = JSONResponse(body.to_json())
    response.headers["Cache-Control"] = cache_control
    response.headers["ETag"] = f'W/"businesses-{int(time.time() * 1000)}"'
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Vary"] = "Accept-Encoding"
    return response


def _record_feed(params: FeedParams, body: FeedResponse, user_id: str | None, start_time: float) -> None:
    meta = body.meta.model_dump(by_alias=True)
    record_event("feed", {
        "strategy": "mixed" if params.is_mixed else "standard",
        "category": params.category,
        "dealbreakers": list(params.dealbreaker_ids),
        "count": meta["count"],
        "buckets": meta.get("buckets"),
        "authenticated": user_id is not None,
        "response_time_ms": round((time.time() - start_time) * 1000, 1),
    })


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/deal-breakers")
def deal_breakers() -> dict:
    return {
        "dealBreakers": [d.model_dump() for d in DEAL_BREAKERS],
        "count": len(DEAL_BREAKERS),
    }


@app.get("/businesses")
async def list_businesses(
    request: Request,
    client: Any = Depends(get_db),
    user_id: str | None = Depends(get_current_user_id),
):
    start_time = time.time()
    params = FeedParams.from_query(request.query_params)

    try:
        if params.is_mixed:
            body = await handle_mixed_feed(client, params, user_id)
        else:
            body = await run_in_threadpool(fetch_standard_feed, client, params)
    except FeedError as exc:
        return JSONResponse(status_code=500, content=exc.to_dict())
    except Exception:
        logger.exception("Error in businesses API")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch businesses"})

    _record_feed(params, body, user_id, start_time)
    return _listing_response(body, DEFAULT_FEED_CONFIG.cache_control)


@app.get("/businesses/special")
async def special_businesses(
    request: Request,
    client: Any = Depends(get_db),
    user_id: str | None = Depends(get_current_user_id),
):
    list_type = request.query_params.get("type")
    if list_type not in SPECIAL_LIST_RPCS:
        return await list_businesses(request, client, user_id)

    params = FeedParams.from_query(request.query_params)
    try:
        body = await run_in_threadpool(fetch_special_list, client, list_type, params.category, params.limit)
    except FeedError as exc:
        return JSONResponse(status_code=500, content={"error": exc.message})
    except Exception:
        logger.exception("Error in special businesses list API")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return _listing_response(body, DEFAULT_FEED_CONFIG.special_cache_control)


# ── Auth endpoints ───────────────────────────────────────────────────────


@app.post("/auth/login")
def login(body: LoginRequest, request: Request) -> dict:
    user = authenticate(body.username, body.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    request.session["user"] = user
    return {"status": "ok", "user": user}


@app.post("/auth/logout")
def logout(request: Request) -> dict:
    request.session.clear()
    return {"status": "logged_out"}


@app.get("/auth/me")
def auth_me(user: dict = Depends(require_user)) -> dict:
    return user


# ── Admin endpoints ──────────────────────────────────────────────────────


@app.get("/analytics")
def analytics(user: dict = Depends(require_admin)) -> dict:
    return compute_analytics(get_events())
