import mongomock
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

import database
from main import app
from database import get_db


@pytest.fixture(name="db")
def db_fixture():
    client = mongomock.MongoClient(tz_aware=True)
    db = client["smsdb_test"]
    database.ensure_indexes(db)
    yield db
    client.close()


@pytest_asyncio.fixture(name="client")
async def client_fixture(db):
    def get_db_override():
        return db

    app.dependency_overrides[get_db] = get_db_override
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="course_payload")
def course_payload_fixture():
    return {"name": "CS101", "description": "Intro", "duration": "8w"}


@pytest.fixture(name="student_payload")
def student_payload_fixture():
    return {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "course": "CS101",
        "enrollmentDate": "2024-01-15",
    }
