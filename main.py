"""
Main API module for the Shortlink Platform.

Responsibilities:
    - Expose REST endpoints for creating, listing and deleting short links
    - Redirect hashes to their original URLs (counting visits)
    - Map core errors to HTTP status codes without leaking internal state

Architecture:
    - App Factory pattern (create_app) for test isolation and DI.
    - In-memory Storage by default; PostgreSQL via SHORTLINK_STORAGE_BACKEND.
    - LinkManager owns validation, alias rules, collision handling and expiry;
      this module is thin glue around it.
    - Admin endpoints are gated by the `auth` package; the core performs no authorization.

LLM Prompt Example:
    "Explain how to structure a FastAPI service with an application factory,
    injected dependencies, and a clean separation between API and business logic."
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Response, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from auth.dependencies import require_admin
from shortlink_platform.config import settings
from shortlink_platform.errors import (
    AliasTaken,
    HashExhausted,
    LinkError,
    NotFound,
    StorageFailure,
    ValidationFailed,
)
from shortlink_platform.manager.link_manager import LinkManager
from shortlink_platform.models import Link
from shortlink_platform.storage.base import BaseStorage
from shortlink_platform.storage.storage_factory import get_storage


class LinkRequest(BaseModel):
    """Request payload for creating a new short link."""
    url: str
    visible: bool = True
    custom_hash: Optional[str] = None
    title: Optional[str] = None
    expires_in: Optional[int] = None  # seconds


class LinkResponse(BaseModel):
    """Outbound link representation."""
    id: int
    short_url: str
    hash: str
    visible: bool
    visitors: int
    expires_at: Optional[datetime] = None
    title: Optional[str] = None


class LinkListResponse(BaseModel):
    links: List[LinkResponse]
    page: int
    per_page: int
    next_page: Optional[int] = None


def short_url_for(hash_value: str) -> str:
    """Fully-qualified short URL: redirect origin + '/' + hash."""
    return f"{settings.REDIRECT_ORIGIN}/{hash_value}"


def to_response(link: Link) -> LinkResponse:
    return LinkResponse(
        id=link.id,
        short_url=short_url_for(link.hash),
        hash=link.hash,
        visible=link.visible,
        visitors=link.visitors,
        expires_at=link.expires_at,
        title=link.title,
    )


log = logging.getLogger("shortlink")


def _http_error(exc: LinkError) -> HTTPException:
    """
    Translate a core error into an HTTPException.

    Validation and alias conflicts carry their message (client-correctable);
    NotFound gets a fixed message; server-side failures are opaque.
    """
    if isinstance(exc, ValidationFailed):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, AliasTaken):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Link not found")
    log.error("Request failed: %s: %s", type(exc).__name__, exc, exc_info=exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


def create_app(storage: Optional[BaseStorage] = None, manager: Optional[LinkManager] = None) -> FastAPI:
    """
    Factory function to build and configure a new FastAPI app instance.

    Args:
        storage (Optional[BaseStorage]): Backend to use; chosen by the storage
            factory from the environment when omitted.
        manager (Optional[LinkManager]): Pre-built manager (tests inject one with
            a fixed hash strategy); built on `storage` when omitted.

    Returns:
        FastAPI: A fully configured application instance. The storage and
                 manager are exposed on `app.state` for fixtures and admin tooling.

    LLM Prompt Example:
        "Show how an application factory enables test isolation and easy
        dependency swapping (e.g., in-memory vs DB storage) without code changes."
    """
    app = FastAPI(
        title="Shortlink Platform",
        description="URL shortener with collision-safe hashes, expiry and visit counting",
        docs_url="/docs",  # Swagger UI endpoint
    )

    # basic console logging unless the host process configured it already
    if not logging.getLogger().handlers:
        logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))

    # ----------------------------------------------------------------
    # Per-app instances (isolated for tests, swappable for production)
    # ----------------------------------------------------------------
    if manager is None:
        storage = storage or get_storage()
        manager = LinkManager(storage=storage)
    app.state.storage = manager.storage
    app.state.manager = manager
    log.info("Shortlink storage backend: %s", type(manager.storage).__name__)

    # Health check
    @app.get("/health")
    def health():
        return {"status": "ok"}

    # ----------------------------------------------------------------
    # Routes
    # ----------------------------------------------------------------
    @app.post("/api/links", status_code=status.HTTP_201_CREATED, response_model=LinkResponse)
    def create_link(req: LinkRequest) -> LinkResponse:
        """
        Create a short link.

        Returns:
            LinkResponse: The new link (201).

        Raises:
            HTTPException: 422 on validation errors, 409 when the custom hash is
                taken, 500 on storage failures or an exhausted hash budget.
        """
        try:
            link = manager.create_link(
                req.url,
                visible=req.visible,
                custom_hash=req.custom_hash,
                title=req.title,
                expires_in=req.expires_in,
            )
        except (ValidationFailed, AliasTaken, HashExhausted, StorageFailure) as exc:
            raise _http_error(exc) from exc
        return to_response(link)

    @app.get("/api/links", response_model=LinkListResponse)
    def list_links(
        page: int = Query(1, ge=1, description="1-indexed page number."),
        per_page: Optional[int] = Query(None, ge=1, description="Items per page."),
    ) -> LinkListResponse:
        """
        List visible links, newest first.

        Storage failures propagate as 500; the endpoint never returns a
        partial or empty page in place of an error.
        """
        try:
            result = manager.list_links(page=page, per_page=per_page)
        except (ValidationFailed, StorageFailure) as exc:
            raise _http_error(exc) from exc
        return LinkListResponse(
            links=[to_response(link) for link in result.items],
            page=result.page,
            per_page=result.per_page,
            next_page=result.next_page,
        )

    @app.delete("/api/links/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_link(link_id: int, _admin: str = Depends(require_admin)) -> Response:
        """Hard-delete a link (admin only)."""
        try:
            manager.delete_link(link_id)
        except (NotFound, StorageFailure) as exc:
            raise _http_error(exc) from exc
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.get("/{hash_value}", name="redirect_link")
    def redirect_link(hash_value: str) -> Response:
        """
        Redirect a hash to its original URL, counting the visit.

        Raises:
            HTTPException: 404 if the hash is unknown or the link has expired.
        """
        try:
            link = manager.resolve(hash_value)
        except (NotFound, StorageFailure) as exc:
            raise _http_error(exc) from exc
        return RedirectResponse(url=link.url, status_code=status.HTTP_303_SEE_OTHER)

    return app


# `uvicorn main:app --reload` and `from main import app` continue to work.
app = create_app()
