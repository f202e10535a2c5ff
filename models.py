"""
Data model shared by the scraper, the enhancement pipeline and the REST layer
"""
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId

from html_sanitizer import excerpt, strip_html

WORDS_PER_MINUTE = 200


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def word_count(content: str) -> int:
    text = strip_html(content)
    return len(text.split()) if text else 0


def reading_time_minutes(words: int) -> int:
    return math.ceil(words / WORDS_PER_MINUTE)


@dataclass
class SourceDocument:
    title: str
    content: str
    author: str
    published_at: datetime
    source_url: str


@dataclass
class SearchResult:
    url: str
    title: str


@dataclass
class ReferenceDocument:
    url: str
    title: str
    content: str


@dataclass
class ReferenceMeta:
    url: str
    title: str
    scraped_at: datetime = field(default_factory=_utcnow)

    def to_document(self) -> Dict[str, Any]:
        return {"url": self.url, "title": self.title, "scrapedAt": self.scraped_at}

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ReferenceMeta":
        return cls(
            url=doc.get("url") or "",
            title=doc.get("title") or "",
            scraped_at=doc.get("scrapedAt") or _utcnow(),
        )


@dataclass
class ArticleMetadata:
    scraped_at: datetime = field(default_factory=_utcnow)
    enhanced_at: Optional[datetime] = None
    word_count: int = 0
    reading_time_minutes: int = 0

    @classmethod
    def for_content(cls, content: str, scraped_at: Optional[datetime] = None) -> "ArticleMetadata":
        meta = cls(scraped_at=scraped_at or _utcnow())
        return meta.recomputed(content)

    def recomputed(self, content: str) -> "ArticleMetadata":
        words = word_count(content)
        return replace(self, word_count=words, reading_time_minutes=reading_time_minutes(words))

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "scrapedAt": self.scraped_at,
            "wordCount": self.word_count,
            "readingTimeMinutes": self.reading_time_minutes,
        }
        if self.enhanced_at is not None:
            doc["enhancedAt"] = self.enhanced_at
        return doc

    @classmethod
    def from_document(cls, doc: Optional[Dict[str, Any]]) -> "ArticleMetadata":
        doc = doc or {}
        return cls(
            scraped_at=doc.get("scrapedAt") or _utcnow(),
            enhanced_at=doc.get("enhancedAt"),
            word_count=int(doc.get("wordCount") or 0),
            reading_time_minutes=int(doc.get("readingTimeMinutes") or 0),
        )


@dataclass
class ArticleRecord:
    """The persisted unit of storage: an original or an enhanced article.

    Originals (is_updated=False) never carry original_article_id; enhanced
    copies always point at the id of the original they were derived from.
    """

    title: str
    content: str
    url: str
    author: str = "Unknown"
    date: datetime = field(default_factory=_utcnow)
    is_updated: bool = False
    original_article_id: Optional[str] = None
    references: List[ReferenceMeta] = field(default_factory=list)
    metadata: ArticleMetadata = field(default_factory=ArticleMetadata)
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_source(cls, source: SourceDocument) -> "ArticleRecord":
        return cls(
            title=source.title,
            content=source.content,
            url=source.source_url,
            author=source.author,
            date=source.published_at,
            metadata=ArticleMetadata.for_content(source.content),
        )

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "title": self.title,
            "content": self.content,
            "author": self.author,
            "date": self.date,
            "url": self.url,
            "isUpdated": self.is_updated,
            "originalArticleId": ObjectId(self.original_article_id) if self.original_article_id else None,
            "references": [r.to_document() for r in self.references],
            "metadata": self.metadata.to_document(),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.id:
            doc["_id"] = ObjectId(self.id)
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ArticleRecord":
        original_id = doc.get("originalArticleId")
        return cls(
            id=str(doc["_id"]) if doc.get("_id") is not None else None,
            title=doc.get("title") or "",
            content=doc.get("content") or "",
            url=doc.get("url") or "",
            author=doc.get("author") or "Unknown",
            date=doc.get("date") or _utcnow(),
            is_updated=bool(doc.get("isUpdated")),
            original_article_id=str(original_id) if original_id else None,
            references=[ReferenceMeta.from_document(r) for r in (doc.get("references") or [])],
            metadata=ArticleMetadata.from_document(doc.get("metadata")),
            created_at=doc.get("createdAt"),
            updated_at=doc.get("updatedAt"),
        )

    def to_json(self) -> Dict[str, Any]:
        """JSON-safe projection used by the REST layer."""

        def _iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if isinstance(value, datetime) else value

        meta = self.metadata
        return {
            "_id": self.id,
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "excerpt": excerpt(self.content),
            "author": self.author,
            "date": _iso(self.date),
            "url": self.url,
            "isUpdated": self.is_updated,
            "originalArticleId": self.original_article_id,
            "references": [
                {"url": r.url, "title": r.title, "scrapedAt": _iso(r.scraped_at)}
                for r in self.references
            ],
            "metadata": {
                "scrapedAt": _iso(meta.scraped_at),
                "enhancedAt": _iso(meta.enhanced_at),
                "wordCount": meta.word_count,
                "readingTimeMinutes": meta.reading_time_minutes,
            },
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
