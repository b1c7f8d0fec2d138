import pytest
from httpx import ASGITransport, AsyncClient

from core import db, dispatch
from fakes import FakePool, InMemoryCatalog
from images import repository as images_repository
from main import app
from products import repository as products_repository

IMAGE_REPOSITORY_FUNCTIONS = ("insert_image", "get_image", "delete_image")
PRODUCT_REPOSITORY_FUNCTIONS = (
    "list_products",
    "get_product",
    "insert_product",
    "update_product",
    "delete_product",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test from default settings."""
    for name in (
        "REQUEST_TIMEOUT_MS",
        "UPLOAD_TIMEOUT_MS",
        "MAX_UPLOAD_BYTES",
        "MAX_PAGE_LIMIT",
        "DB_ACQUIRE_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_pool(monkeypatch):
    """Install a counting fake as the process-wide pool."""
    pool = FakePool()
    monkeypatch.setattr(db, "_pool", pool)
    return pool


@pytest.fixture
def catalog(monkeypatch, fake_pool):
    """Swap both repositories for one in-memory store."""
    store = InMemoryCatalog()
    for name in IMAGE_REPOSITORY_FUNCTIONS:
        monkeypatch.setattr(images_repository, name, getattr(store, name))
    for name in PRODUCT_REPOSITORY_FUNCTIONS:
        monkeypatch.setattr(products_repository, name, getattr(store, name))
    return store


@pytest.fixture
async def client(fake_pool):
    """Async test client talking to the app in-process."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    # Let timed-out handlers finish inside this test's event loop.
    await dispatch.drain_abandoned(5.0)
