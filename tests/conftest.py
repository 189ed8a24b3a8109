import os
import shutil
import tempfile

# Configure before the app modules read the environment at import
UPLOAD_ROOT = tempfile.mkdtemp(prefix="portfolio-uploads-")
os.environ["DATABASE_URL"] = ""
os.environ["ADMIN_PASSWORD"] = "letmein"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["UPLOAD_DIR"] = UPLOAD_ROOT
os.environ["PUBLIC_BASE_URL"] = ""

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import main
import uploads


@pytest.fixture(autouse=True)
def store(monkeypatch):
    mock_db = mongomock.MongoClient()["portfolio_test"]
    monkeypatch.setattr(database, "db", mock_db)
    return mock_db


@pytest.fixture(autouse=True)
def clean_uploads():
    yield
    for category in uploads.CATEGORIES:
        folder = uploads.UPLOAD_DIR / category
        shutil.rmtree(folder, ignore_errors=True)
        folder.mkdir(parents=True, exist_ok=True)


@pytest.fixture
def client():
    return TestClient(main.app)


@pytest.fixture
def admin_headers(client):
    r = client.post("/auth", json={"password": "letmein"})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['d']['access_token']}"}
