"""
MongoDB storage for original and enhanced articles

Originals are de-duplicated by URL at the application level (checked before
insert); enhanced copies carry a back-reference to their original's _id.

Environment variables:
    MONGODB_URI: MongoDB connection string (default: mongodb://localhost:27017)
    MONGO_DB_NAME: Database name (default: blog_enhancer)
    ARTICLES_COLLECTION_NAME: Collection name (default: articles)
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import ConnectionFailure, PyMongoError

import config
from errors import FatalStartupError, PersistenceError
from models import ArticleMetadata, ArticleRecord, ReferenceMeta

LOGGER = logging.getLogger(__name__)

SORTABLE_FIELDS = {"createdAt", "updatedAt", "date", "title"}
EDITABLE_FIELDS = {"title", "content", "author", "date", "url", "isUpdated", "originalArticleId", "references"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _get_client(uri: Optional[str] = None) -> MongoClient:
    """Get MongoDB client with connection string"""
    return MongoClient(
        uri or config.MONGODB_URI,
        serverSelectionTimeoutMS=5000,
        connectTimeoutMS=5000,
        socketTimeoutMS=5000,
    )


def _object_id(article_id: Any) -> ObjectId:
    if isinstance(article_id, ObjectId):
        return article_id
    try:
        return ObjectId(str(article_id))
    except (InvalidId, TypeError):
        raise ValueError(f"Invalid article ID format: {article_id!r}")


class ArticleStore:
    def __init__(self, collection: Any, client: Optional[MongoClient] = None) -> None:
        self.collection = collection
        self.client = client

    @classmethod
    def from_env(cls) -> "ArticleStore":
        client = _get_client()
        collection = client[config.MONGO_DB_NAME][config.ARTICLES_COLLECTION_NAME]
        return cls(collection, client=client)

    def close(self) -> None:
        if self.client is not None:
            self.client.close()

    def ping(self) -> None:
        """Fail fast when the database is unreachable."""
        if self.client is None:
            return
        try:
            self.client.admin.command("ping")
        except PyMongoError as e:
            raise FatalStartupError(
                f"Failed to connect to MongoDB at {config.MONGODB_URI}. "
                f"Make sure MongoDB is running. Error: {e}"
            ) from e

    def init_indexes(self) -> None:
        try:
            self.collection.create_index(
                [("isUpdated", ASCENDING), ("createdAt", DESCENDING)],
                name="is_updated_created_at_idx",
            )
            self.collection.create_index("originalArticleId", name="original_article_id_idx")
            self.collection.create_index("url", name="url_idx")
        except ConnectionFailure as e:
            raise FatalStartupError(f"Failed to create indexes: {e}") from e

    # ------------------------------------------------------------------
    # Pipeline operations
    # ------------------------------------------------------------------

    def find_original_by_url(self, url: str) -> Optional[ArticleRecord]:
        try:
            doc = self.collection.find_one({"url": url, "isUpdated": False})
        except PyMongoError as e:
            raise PersistenceError(f"Lookup by URL failed for {url}: {e}") from e
        return ArticleRecord.from_document(doc) if doc else None

    def _insert(self, record: ArticleRecord) -> ArticleRecord:
        now = _utcnow()
        record.created_at = now
        record.updated_at = now
        doc = record.to_document()
        doc.pop("_id", None)
        try:
            result = self.collection.insert_one(doc)
        except PyMongoError as e:
            raise PersistenceError(f"Insert failed for {record.url}: {e}") from e
        record.id = str(result.inserted_id)
        return record

    def insert_original(self, record: ArticleRecord) -> ArticleRecord:
        if record.is_updated or record.original_article_id:
            raise PersistenceError("Original articles cannot reference another article")
        record.metadata = record.metadata.recomputed(record.content)
        return self._insert(record)

    def insert_enhanced(self, record: ArticleRecord) -> ArticleRecord:
        if not record.is_updated or not record.original_article_id:
            raise PersistenceError("Enhanced articles must reference their original")
        original = self.get(record.original_article_id)
        if original is None or original.is_updated:
            raise PersistenceError(f"Original article {record.original_article_id} not found")
        record.metadata = record.metadata.recomputed(record.content)
        return self._insert(record)

    def list_pending_originals(self, limit: int = 5) -> List[ArticleRecord]:
        """Originals that do not have an enhanced copy yet, oldest first."""
        try:
            enhanced_ids = set(self.collection.distinct("originalArticleId", {"isUpdated": True}))
            cursor = self.collection.find({"isUpdated": False}).sort("createdAt", ASCENDING)
            pending: List[ArticleRecord] = []
            for doc in cursor:
                if doc["_id"] in enhanced_ids:
                    continue
                pending.append(ArticleRecord.from_document(doc))
                if len(pending) >= limit:
                    break
            return pending
        except PyMongoError as e:
            raise PersistenceError(f"Listing pending originals failed: {e}") from e

    # ------------------------------------------------------------------
    # CRUD used by the REST layer
    # ------------------------------------------------------------------

    def get(self, article_id: Any) -> Optional[ArticleRecord]:
        oid = _object_id(article_id)
        try:
            doc = self.collection.find_one({"_id": oid})
        except PyMongoError as e:
            raise PersistenceError(f"Lookup failed for {article_id}: {e}") from e
        return ArticleRecord.from_document(doc) if doc else None

    def list_articles(
        self,
        is_updated: Optional[bool] = None,
        limit: int = 50,
        page: int = 1,
        sort_by: str = "createdAt",
        order: str = "desc",
    ) -> Tuple[List[ArticleRecord], int]:
        query: Dict[str, Any] = {}
        if is_updated is not None:
            query["isUpdated"] = is_updated
        if sort_by not in SORTABLE_FIELDS:
            sort_by = "createdAt"
        direction = DESCENDING if order == "desc" else ASCENDING
        skip = (max(page, 1) - 1) * limit
        try:
            cursor = self.collection.find(query).sort(sort_by, direction).skip(skip).limit(limit)
            records = [ArticleRecord.from_document(doc) for doc in cursor]
            total = self.collection.count_documents(query)
        except PyMongoError as e:
            raise PersistenceError(f"Listing articles failed: {e}") from e
        return records, total

    def create(self, fields: Dict[str, Any]) -> ArticleRecord:
        record = ArticleRecord(
            title=fields["title"],
            content=fields["content"],
            url=fields["url"],
            author=fields.get("author") or "Unknown",
            date=fields.get("date") or _utcnow(),
            is_updated=bool(fields.get("isUpdated", False)),
            original_article_id=fields.get("originalArticleId"),
            references=[
                ReferenceMeta(url=r.get("url") or "", title=r.get("title") or "", scraped_at=r.get("scrapedAt") or _utcnow())
                for r in (fields.get("references") or [])
            ],
            metadata=ArticleMetadata(),
        )
        if record.original_article_id:
            _object_id(record.original_article_id)
        if record.is_updated:
            return self.insert_enhanced(record)
        return self.insert_original(record)

    def _check_link(self, oid: ObjectId, current: Dict[str, Any], updates: Dict[str, Any]) -> None:
        """Reject updates that would break the original/enhanced back-reference."""
        is_updated = bool(updates.get("isUpdated", current.get("isUpdated")))
        original_id = updates["originalArticleId"] if "originalArticleId" in updates else current.get("originalArticleId")
        if not is_updated:
            if original_id:
                raise ValueError("Original articles cannot reference another article")
            return
        if not original_id:
            raise ValueError("Enhanced articles must reference their original")
        if original_id == oid:
            raise ValueError("An article cannot reference itself")
        try:
            original = self.collection.find_one({"_id": original_id}, {"isUpdated": 1})
            has_copies = not current.get("isUpdated") and self.collection.find_one(
                {"originalArticleId": oid, "isUpdated": True}, {"_id": 1}
            ) is not None
        except PyMongoError as e:
            raise PersistenceError(f"Reference check failed for {oid}: {e}") from e
        if original is None or original.get("isUpdated"):
            raise ValueError(f"Original article {original_id} not found")
        if has_copies:
            raise ValueError("Article has enhanced copies and must stay an original")

    def update(self, article_id: Any, fields: Dict[str, Any]) -> Optional[ArticleRecord]:
        oid = _object_id(article_id)
        updates: Dict[str, Any] = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
        if "originalArticleId" in updates:
            updates["originalArticleId"] = _object_id(updates["originalArticleId"]) if updates["originalArticleId"] else None
        try:
            current = self.collection.find_one({"_id": oid})
        except PyMongoError as e:
            raise PersistenceError(f"Lookup failed for {article_id}: {e}") from e
        if current is None:
            return None
        if "isUpdated" in updates or "originalArticleId" in updates:
            self._check_link(oid, current, updates)
        if "content" in updates:
            words = ArticleMetadata().recomputed(updates["content"])
            updates["metadata.wordCount"] = words.word_count
            updates["metadata.readingTimeMinutes"] = words.reading_time_minutes
        updates["updatedAt"] = _utcnow()
        try:
            result = self.collection.update_one({"_id": oid}, {"$set": updates})
        except PyMongoError as e:
            raise PersistenceError(f"Update failed for {article_id}: {e}") from e
        if result.matched_count == 0:
            return None
        return self.get(oid)

    def delete(self, article_id: Any) -> bool:
        oid = _object_id(article_id)
        try:
            result = self.collection.delete_one({"_id": oid})
        except PyMongoError as e:
            raise PersistenceError(f"Delete failed for {article_id}: {e}") from e
        return result.deleted_count > 0

    def comparison(self, article_id: Any) -> Optional[Tuple[Optional[ArticleRecord], Optional[ArticleRecord]]]:
        """Return (original, enhanced) following the back-reference either way."""
        article = self.get(article_id)
        if article is None:
            return None
        if article.is_updated:
            original = self.get(article.original_article_id) if article.original_article_id else None
            return original, article
        try:
            doc = self.collection.find_one({"originalArticleId": _object_id(article.id), "isUpdated": True})
        except PyMongoError as e:
            raise PersistenceError(f"Comparison lookup failed for {article_id}: {e}") from e
        return article, (ArticleRecord.from_document(doc) if doc else None)

    def count(self, is_updated: Optional[bool] = None) -> int:
        query: Dict[str, Any] = {} if is_updated is None else {"isUpdated": is_updated}
        try:
            return self.collection.count_documents(query)
        except PyMongoError as e:
            raise PersistenceError(f"Count failed: {e}") from e
