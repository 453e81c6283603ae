"""FastAPI routes for the resonance admin REST API."""

import asyncio
import logging
import random
import time
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from resonance.hub.core import ResonanceHub
from resonance.models import ResonanceKey, ResonanceRow
from resonance.store.session import UnknownRowError
from resonance.store.view import ViewQuery

logger = logging.getLogger(__name__)


# --- Pydantic request models ---
class RowEdit(BaseModel):
    media_path: str
    role: str
    intensity: float | None = None
    enabled: bool | None = None


class ViewParams(BaseModel):
    role: str = "all"
    status: str = "all"
    search: str = ""
    sort: str = "intensity"


class RandomSoftParams(ViewParams):
    seed: int | None = Field(default=None, description="Seed for a reproducible run")


def _query(params: ViewParams) -> ViewQuery:
    try:
        return ViewQuery(role=params.role, status=params.status, search=params.search, sort=params.sort)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None


def _row_payload(hub: ResonanceHub, row: ResonanceRow) -> dict[str, Any]:
    """Effective row plus semantics enrichment and edit flags."""
    payload = row.to_dict()
    semantics = hub.loader.semantics.get(row.media_path)
    payload["semantics"] = (
        {
            "category": semantics.category,
            "climate": semantics.climate,
            "energy": semantics.energy,
            "tags": list(semantics.tags),
        }
        if semantics
        else None
    )
    payload["pending"] = hub.session.is_pending(row.key)
    payload["unconfirmed"] = row.key in hub.session.unconfirmed(row.tag)
    return payload


def _register_load_routes(router: APIRouter, hub: ResonanceHub, remote_lock: asyncio.Lock) -> None:
    """Register reload and group listing endpoints."""

    @router.post("/api/reload")
    async def reload():
        """Reload base rows from the remote store."""
        async with remote_lock:
            ok = await hub.load()
        if not ok:
            return JSONResponse(status_code=502, content={"status": "error", "error": hub.loader.error})
        return {"status": "ok", "rows": len(hub.loader.rows)}

    @router.get("/api/groups")
    async def list_groups():
        """List groups with row and pending counts."""
        return {"groups": hub.groups()}


def _register_edit_routes(router: APIRouter, hub: ResonanceHub) -> None:
    """Register view, edit and bulk endpoints for one group."""

    @router.get("/api/groups/{tag}/rows")
    async def get_rows(
        tag: str,
        role: str = Query("all"),
        status: str = Query("all"),
        search: str = Query(""),
        sort: str = Query("intensity"),
    ):
        """Filtered, sorted effective rows of a group."""
        query = _query(ViewParams(role=role, status=status, search=search, sort=sort))
        rows = hub.view(tag, query)
        return {
            "tag": tag,
            "rows": [_row_payload(hub, row) for row in rows],
            "count": len(rows),
            "pending": hub.pending_count(tag),
        }

    @router.patch("/api/groups/{tag}/rows")
    async def edit_row(tag: str, body: RowEdit):
        """Record a local edit for one row."""
        key = ResonanceKey(tag, body.media_path, body.role)
        try:
            patch = hub.set_edit(key, intensity=body.intensity, enabled=body.enabled)
        except UnknownRowError:
            raise HTTPException(status_code=404, detail=f"Row {tag} / {body.media_path} / {body.role} not found") from None
        return {"key": key._asdict(), "patch": patch.to_dict(), "pending": hub.pending_count(tag)}

    @router.post("/api/groups/{tag}/autofill")
    async def autofill(tag: str, body: ViewParams | None = None):
        written = hub.autofill(tag, _query(body or ViewParams()))
        return {"written": written, "pending": hub.pending_count(tag)}

    @router.post("/api/groups/{tag}/normalize")
    async def normalize(tag: str, body: ViewParams | None = None):
        written = hub.normalize(tag, _query(body or ViewParams()))
        return {"written": written, "pending": hub.pending_count(tag)}

    @router.post("/api/groups/{tag}/random-soft")
    async def random_soft(tag: str, body: RandomSoftParams | None = None):
        body = body or RandomSoftParams()
        rng = random.Random(body.seed) if body.seed is not None else None
        written = hub.random_soft(tag, _query(body), rng=rng)
        return {"written": written, "pending": hub.pending_count(tag)}

    @router.delete("/api/groups/{tag}/pending")
    async def clear_pending(tag: str):
        """Discard every pending edit of a group."""
        return {"cleared": hub.clear_group(tag), "pending": hub.pending_count(tag)}


def _register_save_routes(router: APIRouter, hub: ResonanceHub, remote_lock: asyncio.Lock) -> None:
    """Register the save endpoint."""

    @router.post("/api/groups/{tag}/save")
    async def save_group(tag: str):
        """Flush a group's pending edits to the remote store."""
        async with remote_lock:
            result = await hub.save_group(tag)
        if not result.ok:
            return JSONResponse(status_code=502, content=result.to_dict())
        return result.to_dict()


def create_api(hub: ResonanceHub) -> FastAPI:
    """Create FastAPI application with hub routes.

    Args:
        hub: ResonanceHub instance

    Returns:
        FastAPI application
    """
    from resonance import __version__

    app = FastAPI(
        title="Resonance Admin",
        description="REST API for browsing and bulk-editing tag/media resonance rows",
        version=__version__,
    )

    # Reload and save are serialized here; the hub itself does not guard reentrancy.
    remote_lock = asyncio.Lock()

    # --- Request timing middleware ---
    @app.middleware("http")
    async def request_timing_middleware(request: Request, call_next):
        start = time.monotonic()
        response = await call_next(request)
        elapsed = time.monotonic() - start
        if elapsed > 1.0:
            logger.warning(f"{request.method} {request.url.path} took {elapsed:.2f}s")
        else:
            logger.debug(f"{request.method} {request.url.path} took {elapsed:.3f}s")
        return response

    @app.get("/health")
    async def health():
        """Load and session state."""
        return hub.status()

    router = APIRouter()
    _register_load_routes(router, hub, remote_lock)
    _register_edit_routes(router, hub)
    _register_save_routes(router, hub, remote_lock)
    app.include_router(router)

    return app
