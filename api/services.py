"""
Service layer wrapping the article store for the API
"""
import asyncio
import math
from typing import Any, Dict, Optional, Tuple

from articles_store import ArticleStore
from models import ArticleRecord


class NotFoundError(Exception):
    pass


class ArticleService:
    """Runs blocking store calls in the default thread pool."""

    def __init__(self, store: ArticleStore) -> None:
        self.store = store

    async def _run(self, fn, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: fn(*args, **kwargs))

    async def list_articles(
        self,
        is_updated: Optional[bool],
        limit: int,
        page: int,
        sort_by: str,
        order: str,
    ) -> Dict[str, Any]:
        records, total = await self._run(
            self.store.list_articles,
            is_updated=is_updated,
            limit=limit,
            page=page,
            sort_by=sort_by,
            order=order,
        )
        return {
            "success": True,
            "count": len(records),
            "total": total,
            "page": page,
            "pages": math.ceil(total / limit) if limit else 0,
            "data": [r.to_json() for r in records],
        }

    async def get_article(self, article_id: str) -> Dict[str, Any]:
        record = await self._run(self.store.get, article_id)
        if record is None:
            raise NotFoundError("Article not found")
        data = record.to_json()
        if record.original_article_id:
            original = await self._run(self.store.get, record.original_article_id)
            if original is not None:
                data["originalArticle"] = {
                    "id": original.id,
                    "title": original.title,
                    "url": original.url,
                    "date": original.to_json()["date"],
                }
        return data

    async def create_article(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        record: ArticleRecord = await self._run(self.store.create, fields)
        return record.to_json()

    async def update_article(self, article_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        record = await self._run(self.store.update, article_id, fields)
        if record is None:
            raise NotFoundError("Article not found")
        return record.to_json()

    async def delete_article(self, article_id: str) -> None:
        deleted = await self._run(self.store.delete, article_id)
        if not deleted:
            raise NotFoundError("Article not found")

    async def comparison(self, article_id: str) -> Dict[str, Optional[Dict[str, Any]]]:
        pair: Optional[Tuple[Optional[ArticleRecord], Optional[ArticleRecord]]] = await self._run(
            self.store.comparison, article_id
        )
        if pair is None:
            raise NotFoundError("Article not found")
        original, enhanced = pair
        return {
            "original": original.to_json() if original else None,
            "enhanced": enhanced.to_json() if enhanced else None,
        }
