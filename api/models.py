"""
Pydantic models for API requests and responses
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional, Dict, Any
from datetime import datetime
import re

_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")
_URL_RE = re.compile(r"^https?://\S+$", re.IGNORECASE)


# ============================================================================
# REQUEST MODELS
# ============================================================================

class ReferenceIn(BaseModel):
    """Citation metadata of a reference article"""
    url: str
    title: str = ""
    scrapedAt: Optional[datetime] = None


class _ArticleFields(BaseModel):
    @field_validator("url", check_fields=False)
    @classmethod
    def _valid_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not _URL_RE.match(v.strip()):
            raise ValueError("URL must be a valid URI")
        return v.strip() if v is not None else v

    @field_validator("originalArticleId", check_fields=False)
    @classmethod
    def _valid_object_id(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not _OBJECT_ID_RE.match(v):
            raise ValueError("Invalid MongoDB ObjectId format")
        return v


class ArticleCreateRequest(_ArticleFields):
    """Request model for creating an article"""
    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    url: str
    author: str = "Unknown"
    date: Optional[datetime] = None
    isUpdated: bool = False
    originalArticleId: Optional[str] = None
    references: List[ReferenceIn] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "What is a chatbot?",
                "content": "<p>A chatbot is ...</p>",
                "url": "https://example.com/blogs/what-is-a-chatbot/",
                "author": "Jane Doe",
            }
        }
    )


class ArticleUpdateRequest(_ArticleFields):
    """Request model for updating an article (at least one field)"""
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=1)
    url: Optional[str] = None
    author: Optional[str] = None
    date: Optional[datetime] = None
    isUpdated: Optional[bool] = None
    originalArticleId: Optional[str] = None
    references: Optional[List[ReferenceIn]] = None


# ============================================================================
# RESPONSE MODELS
# ============================================================================

class ArticleListResponse(BaseModel):
    """Paginated list of articles"""
    success: bool = True
    count: int
    total: int
    page: int
    pages: int
    data: List[Dict[str, Any]]


class ArticleResponse(BaseModel):
    success: bool = True
    data: Optional[Dict[str, Any]] = None
    message: Optional[str] = None


class ComparisonResponse(BaseModel):
    success: bool = True
    data: Dict[str, Optional[Dict[str, Any]]]
