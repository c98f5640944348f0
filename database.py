import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from errors import NotFoundError, ValidationError

logger = logging.getLogger("sms.database")

STUDENTS = "students"
COURSES = "courses"


def connect(url: str, name: str) -> Tuple[MongoClient, Database]:
    client = MongoClient(url, tz_aware=True)
    logger.info("Connected to MongoDB database %s", name)
    return client, client[name]


def close(client: MongoClient) -> None:
    client.close()
    logger.info("MongoDB connection closed")


def ensure_indexes(db: Database) -> None:
    db[STUDENTS].create_index("email", unique=True)
    db[STUDENTS].create_index("course")
    db[STUDENTS].create_index([("createdAt", DESCENDING)])
    db[COURSES].create_index("name", unique=True)


def get_db(request: Request) -> Database:
    return request.app.state.db


# Helpers

def to_dict(doc):
    if not doc:
        return doc
    doc["_id"] = str(doc["_id"])  # type: ignore
    return doc


def to_object_id(id_str: str) -> Optional[ObjectId]:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def now() -> datetime:
    return datetime.now(timezone.utc)


class Repository:
    """Find/insert/update/delete against a single collection.

    ``label`` names the entity in error messages and ``unique`` the field
    backed by a unique index, so duplicate-key failures can be reported as
    validation errors.
    """

    def __init__(self, db: Database, collection: str, label: str, unique: str):
        self.collection = db[collection]
        self.label = label
        self.unique = unique

    def _not_found(self) -> NotFoundError:
        return NotFoundError(f"{self.label} not found")

    def _duplicate(self) -> ValidationError:
        return ValidationError(f"{self.label} with this {self.unique} already exists")

    def list(self, sort: Sequence[Tuple[str, int]], query: Optional[Dict[str, Any]] = None) -> List[dict]:
        return [to_dict(d) for d in self.collection.find(query or {}).sort(list(sort))]

    def get(self, id_str: str) -> dict:
        oid = to_object_id(id_str)
        doc = self.collection.find_one({"_id": oid}) if oid else None
        if not doc:
            raise self._not_found()
        return to_dict(doc)

    def find_one(self, id_str: str) -> Optional[dict]:
        oid = to_object_id(id_str)
        return to_dict(self.collection.find_one({"_id": oid})) if oid else None

    def insert(self, data: Dict[str, Any]) -> dict:
        stamp = now()
        doc = dict(data, createdAt=stamp, updatedAt=stamp)
        try:
            res = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise self._duplicate()
        return to_dict(self.collection.find_one({"_id": res.inserted_id}))

    def update(self, id_str: str, fields: Dict[str, Any]) -> dict:
        oid = to_object_id(id_str)
        if not oid:
            raise self._not_found()
        try:
            doc = self.collection.find_one_and_update(
                {"_id": oid},
                {"$set": dict(fields, updatedAt=now())},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise self._duplicate()
        if not doc:
            raise self._not_found()
        return to_dict(doc)

    def delete(self, id_str: str) -> None:
        oid = to_object_id(id_str)
        res = self.collection.delete_one({"_id": oid}) if oid else None
        if not res or res.deleted_count == 0:
            raise self._not_found()

    def count(self, query: Optional[Dict[str, Any]] = None) -> int:
        return self.collection.count_documents(query or {})

    def search(self, term: str, fields: Iterable[str], sort: Sequence[Tuple[str, int]]) -> List[dict]:
        """Case-insensitive substring match of ``term`` on any of ``fields``."""
        pattern = re.escape(term)
        query = {"$or": [{f: {"$regex": pattern, "$options": "i"}} for f in fields]}
        return self.list(sort, query)


def students(db: Database) -> Repository:
    return Repository(db, STUDENTS, "Student", "email")


def courses(db: Database) -> Repository:
    return Repository(db, COURSES, "Course", "name")


STUDENT_ORDER = [("createdAt", DESCENDING), ("_id", DESCENDING)]
COURSE_ORDER = [("name", ASCENDING)]
