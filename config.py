"""
Runtime configuration for the blog enhancement pipeline

All settings are read from the environment (a local .env file is loaded first,
without overriding variables that are already set).

Environment variables:
    MONGODB_URI: MongoDB connection string (default: built from MONGO_HOST/MONGO_PORT)
    MONGO_DB_NAME: Database name (default: blog_enhancer)
    ARTICLES_COLLECTION_NAME: Collection name (default: articles)
    GROQ_API_KEY: Credential for the primary LLM provider
    HUGGINGFACE_API_KEY: Credential for the secondary LLM provider
    SCRAPING_DELAY_MS: Delay between articles in milliseconds (default: 2000)
    API_BASE_URL: Base URL of the REST layer (default: http://localhost:5000/api)
"""
import os
import logging
from typing import Optional

try:
    from dotenv import load_dotenv
    load_dotenv(override=False)
except Exception:
    pass


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Storage
MONGO_HOST = os.getenv("MONGO_HOST", "localhost")
MONGO_PORT = _int_env("MONGO_PORT", 27017)
MONGODB_URI = os.getenv("MONGODB_URI") or f"mongodb://{MONGO_HOST}:{MONGO_PORT}"
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "blog_enhancer")
ARTICLES_COLLECTION_NAME = os.getenv("ARTICLES_COLLECTION_NAME", "articles")

# LLM providers
GROQ_BASE_URL = os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1")
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
HUGGINGFACE_MODEL_URL = os.getenv(
    "HUGGINGFACE_MODEL_URL",
    "https://api-inference.huggingface.co/models/mistralai/Mixtral-8x7B-Instruct-v0.1",
)

# Source site
BLOG_URL = os.getenv("BLOG_URL", "https://beyondchats.com/blogs/")
BLOG_LINK_PATTERN = os.getenv("BLOG_LINK_PATTERN", "/blogs/")
DEFAULT_AUTHOR = os.getenv("DEFAULT_AUTHOR", "Unknown")

# Timing (milliseconds)
NAVIGATION_TIMEOUT_MS = _int_env("NAVIGATION_TIMEOUT_MS", 30_000)
SETTLE_DELAY_MS = _int_env("SETTLE_DELAY_MS", 3_000)
REFERENCE_DELAY_MS = _int_env("REFERENCE_DELAY_MS", 2_000)
STEP_DELAY_MS = _int_env("STEP_DELAY_MS", 2_000)
SCRAPING_DELAY_MS = _int_env("SCRAPING_DELAY_MS", 2_000)

# Batch sizes
SEARCH_RESULT_LIMIT = _int_env("SEARCH_RESULT_LIMIT", 2)
ENHANCE_BATCH_LIMIT = _int_env("ENHANCE_BATCH_LIMIT", 5)

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:5000/api")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: Optional[str] = None) -> None:
    """Install a single stream handler on the root logger."""
    resolved = (level or LOG_LEVEL or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, resolved, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
