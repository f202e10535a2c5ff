import mongomock
import pytest

from articles_store import ArticleStore


@pytest.fixture
def store() -> ArticleStore:
    collection = mongomock.MongoClient()["blog_enhancer_test"]["articles"]
    store = ArticleStore(collection)
    store.init_indexes()
    return store
