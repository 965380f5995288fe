"""
Pytest configuration: an in-memory motor database per test and helpers
for building the usual client / time entry fixtures.
"""

import uuid
from datetime import date, time

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from main import app
from hourbook.core.security import create_account_token
from hourbook.db.mongo import get_mongo_db
from hourbook.db.mongo_indexes import ensure_indexes
from hourbook.db.store import Store
from hourbook.services.clients import add_client
from hourbook.services.time_entries import add_time_entry


ACCOUNT_ID = "acct-test"


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()[f"hourbook_test_{uuid.uuid4().hex}"]
    await ensure_indexes(database)
    return database


@pytest.fixture
def store(db):
    return Store(db, ACCOUNT_ID)


@pytest.fixture
async def acme(store):
    """$150/h client with a billing address."""
    return await add_client(
        store,
        {
            "name": "Acme Corp",
            "billing_first_name": "Wile",
            "billing_email": "ap@acme.example.com",
            "cc_emails": ["finance@acme.example.com"],
            "hourly_rate": 150,
        },
    )


@pytest.fixture
def log_entry(store):
    async def _log(client_id: str, day: date, start: time, end: time, project: str = "Web", description: str = "Work"):
        return await add_time_entry(
            store,
            {
                "client_id": client_id,
                "date": day,
                "start_time": start,
                "end_time": end,
                "project": project,
                "description": description,
            },
        )

    return _log


@pytest.fixture
def api(db):
    app.dependency_overrides[get_mongo_db] = lambda: db
    client = TestClient(app)
    client.headers["Authorization"] = f"Bearer {create_account_token(ACCOUNT_ID, 'me@example.com')}"
    yield client
    app.dependency_overrides.clear()
