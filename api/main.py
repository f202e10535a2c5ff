"""
FastAPI application for the Blog Article Enhancer
"""
from fastapi import Depends, FastAPI, Query, Request
from fastapi import Path as PathParam
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from typing import Optional, Dict, Any
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from api.models import (
    ArticleCreateRequest,
    ArticleUpdateRequest,
    ArticleListResponse,
    ArticleResponse,
    ComparisonResponse,
)
from api.services import ArticleService, NotFoundError
from articles_store import ArticleStore
from errors import PersistenceError

LOGGER = logging.getLogger(__name__)

_store: Optional[ArticleStore] = None


def get_store() -> ArticleStore:
    """Lazily connect to MongoDB on first request"""
    global _store
    if _store is None:
        _store = ArticleStore.from_env()
        _store.init_indexes()
    return _store


def get_service(store: ArticleStore = Depends(get_store)) -> ArticleService:
    return ArticleService(store)


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _store
    yield
    if _store is not None:
        _store.close()
        _store = None


app = FastAPI(
    title="Blog Article Enhancer API",
    description="CRUD and comparison endpoints for original and enhanced articles",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return _error(400, "; ".join(messages) or "Validation failed")


@app.exception_handler(ValueError)
async def _value_error(request: Request, exc: ValueError):
    return _error(400, str(exc))


@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError):
    return _error(404, str(exc))


@app.exception_handler(PersistenceError)
async def _persistence_error(request: Request, exc: PersistenceError):
    LOGGER.error("[api] Persistence error on %s %s: %s", request.method, request.url.path, exc)
    return _error(500, str(exc))


# ============================================================================
# INFO ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "name": "Blog Article Enhancer API",
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "articles": "/api/articles",
            "comparison": "/api/articles/{id}/comparison",
            "health": "/health",
            "docs": "/docs",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"success": True, "status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


# ============================================================================
# ARTICLE ENDPOINTS
# ============================================================================

def _reference_dicts(references) -> list:
    now = datetime.now(timezone.utc)
    return [
        {"url": r["url"], "title": r.get("title") or "", "scrapedAt": r.get("scrapedAt") or now}
        for r in references
    ]


@app.get("/api/articles", response_model=ArticleListResponse)
async def list_articles(
    isUpdated: Optional[bool] = Query(None, description="Filter originals (false) or enhanced (true)"),
    limit: int = Query(50, ge=1, le=100),
    page: int = Query(1, ge=1),
    sortBy: str = Query("createdAt", pattern="^(createdAt|updatedAt|date|title)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    service: ArticleService = Depends(get_service),
):
    """List articles with optional filtering, sorting and pagination"""
    return await service.list_articles(
        is_updated=isUpdated,
        limit=limit,
        page=page,
        sort_by=sortBy,
        order=order,
    )


@app.get("/api/articles/{article_id}", response_model=ArticleResponse)
async def get_article(
    article_id: str = PathParam(..., description="MongoDB ObjectId"),
    service: ArticleService = Depends(get_service),
):
    data = await service.get_article(article_id)
    return {"success": True, "data": data}


@app.post("/api/articles", status_code=201, response_model=ArticleResponse)
async def create_article(
    request: ArticleCreateRequest,
    service: ArticleService = Depends(get_service),
):
    """Create an original article, or an enhanced one pointing at its original"""
    if request.isUpdated and not request.originalArticleId:
        raise ValueError("Enhanced articles require originalArticleId")
    fields: Dict[str, Any] = request.model_dump()
    fields["references"] = _reference_dicts(fields["references"])
    data = await service.create_article(fields)
    return {"success": True, "data": data, "message": "Article created successfully"}


@app.put("/api/articles/{article_id}", response_model=ArticleResponse)
async def update_article(
    request: ArticleUpdateRequest,
    article_id: str = PathParam(...),
    service: ArticleService = Depends(get_service),
):
    fields = request.model_dump(exclude_unset=True)
    if not fields:
        raise ValueError("At least one field must be provided for update")
    if "references" in fields and fields["references"] is not None:
        fields["references"] = _reference_dicts(fields["references"])
    data = await service.update_article(article_id, fields)
    return {"success": True, "data": data, "message": "Article updated successfully"}


@app.delete("/api/articles/{article_id}", response_model=ArticleResponse)
async def delete_article(
    article_id: str = PathParam(...),
    service: ArticleService = Depends(get_service),
):
    await service.delete_article(article_id)
    return {"success": True, "message": "Article deleted successfully"}


@app.get("/api/articles/{article_id}/comparison", response_model=ComparisonResponse)
async def get_comparison(
    article_id: str = PathParam(...),
    service: ArticleService = Depends(get_service),
):
    """Original and enhanced versions side by side"""
    data = await service.comparison(article_id)
    return {"success": True, "data": data}
