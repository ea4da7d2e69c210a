"""High-level data access helpers backed by MongoDB (motor)."""
from __future__ import annotations

import logging
import re
from typing import Callable, Optional, Type, TypeVar

from pydantic import BaseModel
from pymongo import ReturnDocument

from school_api.db.models import (
    InsertMessage,
    InsertStudent,
    InsertUser,
    Message,
    Student,
    StudentUpdate,
    User,
)
from school_api.db.session import MongoConnection
from school_api.repositories.base import Storage, new_message, new_student, new_user

logger = logging.getLogger(__name__)

USERS = "users"
STUDENTS = "students"
MESSAGES = "messages"

ErrorCallback = Callable[[str, Exception], None]
RecordT = TypeVar("RecordT", bound=BaseModel)


def _to_record(model: Type[RecordT], document: dict | None) -> Optional[RecordT]:
    if not document:
        return None
    document.pop("_id", None)
    return model.model_validate(document)


def search_filter(query: str) -> dict:
    """$or filter equivalent to ``student_matches``: a literal substring on each field."""
    pattern = re.escape(query)
    return {
        "$or": [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"studentId": {"$regex": pattern, "$options": "i"}},
            {"phone": {"$regex": pattern}},
            {"notes": {"$regex": pattern, "$options": "i"}},
        ]
    }


class MongoStorage(Storage):
    """
    CRUD helpers over the ``users``, ``students`` and ``messages`` collections.

    Identifiers are allocated locally from counters seeded at initialization.
    With the default ``count`` strategy the seed is ``countDocuments + 1``,
    which can collide with an existing id once documents have been deleted;
    ``max`` seeds from the highest stored id instead.

    Only creates propagate errors. Reads, updates, deletes and searches
    report the failure (log + ``on_error``) and answer as if nothing matched.
    """

    def __init__(
        self,
        connection: MongoConnection,
        *,
        id_strategy: str = "count",
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        super().__init__()
        if id_strategy not in {"count", "max"}:
            raise ValueError(f"Unknown id strategy: {id_strategy}")
        self.connection = connection
        self.id_strategy = id_strategy
        self.on_error = on_error
        self.next_user_id = 1
        self.next_student_id = 1
        self.next_message_id = 1

    def _report(self, operation: str, exc: Exception) -> None:
        logger.error("Error %s: %s", operation, exc, exc_info=exc)
        if self.on_error is None:
            return
        try:
            self.on_error(operation, exc)
        except Exception:
            logger.exception("Error callback failed while reporting %s", operation)

    async def _collection(self, name: str):
        await self.connection.ensure_connection()
        return self.connection.get_collection(name)

    async def _next_id(self, name: str) -> int:
        collection = self.connection.get_collection(name)
        count = await collection.count_documents({})
        top = await collection.find_one({}, sort=[("id", -1)])
        highest = int(top["id"]) if top and top.get("id") is not None else 0
        if self.id_strategy == "max":
            return highest + 1
        if highest != count:
            logger.warning(
                "Collection %s holds %d documents but its highest id is %d; new ids may collide",
                name,
                count,
                highest,
            )
        return count + 1

    async def _load(self) -> None:
        try:
            await self.connection.ensure_connection()
            self.next_student_id = await self._next_id(STUDENTS)
            self.next_message_id = await self._next_id(MESSAGES)
            self.next_user_id = await self._next_id(USERS)
        except Exception as exc:
            self._report("initializing MongoDB counters", exc)
            return
        logger.info(
            "MongoDB storage initialized - next ids: students=%d messages=%d users=%d",
            self.next_student_id,
            self.next_message_id,
            self.next_user_id,
        )

    async def close(self) -> None:
        await self.connection.disconnect()

    async def _find_many(self, name: str, model: Type[RecordT], query: dict, operation: str) -> list[RecordT]:
        try:
            collection = await self._collection(name)
            documents = await collection.find(query).to_list(length=None)
            return [_to_record(model, doc) for doc in documents]
        except Exception as exc:
            self._report(operation, exc)
            return []

    async def _find_one(self, name: str, model: Type[RecordT], query: dict, operation: str) -> Optional[RecordT]:
        try:
            collection = await self._collection(name)
            document = await collection.find_one(query)
            return _to_record(model, document)
        except Exception as exc:
            self._report(operation, exc)
            return None

    async def _patch(self, name: str, model: Type[RecordT], record_id: int, changes: dict, operation: str) -> Optional[RecordT]:
        try:
            collection = await self._collection(name)
            if not changes:
                # MongoDB rejects an empty $set
                document = await collection.find_one({"id": record_id})
            else:
                document = await collection.find_one_and_update(
                    {"id": record_id},
                    {"$set": changes},
                    return_document=ReturnDocument.AFTER,
                )
            return _to_record(model, document)
        except Exception as exc:
            self._report(operation, exc)
            return None

    async def _insert(self, name: str, record: BaseModel, operation: str) -> None:
        try:
            collection = await self._collection(name)
            await collection.insert_one(record.to_document())
        except Exception:
            logger.exception("Error %s", operation)
            raise

    # -------------------------- users --------------------------
    async def get_user(self, user_id: int) -> Optional[User]:
        return await self._find_one(USERS, User, {"id": user_id}, "getting user")

    async def get_user_by_username(self, username: str) -> Optional[User]:
        return await self._find_one(USERS, User, {"username": username}, "getting user by username")

    async def create_user(self, data: InsertUser) -> User:
        await self._ensure_ready()
        await self.connection.ensure_connection()
        user = new_user(self.next_user_id, data)
        self.next_user_id += 1
        await self._insert(USERS, user, "creating user")
        return user

    # -------------------------- students --------------------------
    async def get_students(self) -> list[Student]:
        return await self._find_many(STUDENTS, Student, {}, "getting students")

    async def get_student(self, student_id: int) -> Optional[Student]:
        return await self._find_one(STUDENTS, Student, {"id": student_id}, "getting student")

    async def get_students_by_grade(self, grade: int) -> list[Student]:
        return await self._find_many(STUDENTS, Student, {"grade": grade}, "getting students by grade")

    async def create_student(self, data: InsertStudent) -> Student:
        await self._ensure_ready()
        await self.connection.ensure_connection()
        student = new_student(self.next_student_id, data)
        self.next_student_id += 1
        await self._insert(STUDENTS, student, "creating student")
        logger.info("Student saved to MongoDB: %s", student.name)
        return student

    async def update_student(self, student_id: int, data: StudentUpdate) -> Optional[Student]:
        return await self._patch(STUDENTS, Student, student_id, data.document_changes(), "updating student")

    async def delete_student(self, student_id: int) -> bool:
        try:
            collection = await self._collection(STUDENTS)
            result = await collection.delete_one({"id": student_id})
        except Exception as exc:
            self._report("deleting student", exc)
            return False
        return result.deleted_count > 0

    async def search_students(self, query: str) -> list[Student]:
        return await self._find_many(STUDENTS, Student, search_filter(query), "searching students")

    async def import_students(self, students: list[Student]) -> int:
        """Upsert existing records keeping their ids; used to move a JSON backup into MongoDB."""
        await self._ensure_ready()
        collection = await self._collection(STUDENTS)
        for student in students:
            await collection.replace_one({"id": student.id}, student.to_document(), upsert=True)
        if students:
            self.next_student_id = max(self.next_student_id, max(s.id for s in students) + 1)
        return len(students)

    # -------------------------- messages --------------------------
    async def get_messages(self) -> list[Message]:
        return await self._find_many(MESSAGES, Message, {}, "getting messages")

    async def create_message(self, data: InsertMessage) -> Message:
        await self._ensure_ready()
        await self.connection.ensure_connection()
        message = new_message(self.next_message_id, data)
        self.next_message_id += 1
        await self._insert(MESSAGES, message, "creating message")
        return message

    async def update_message_status(self, message_id: int, status: str) -> Optional[Message]:
        return await self._patch(MESSAGES, Message, message_id, {"status": status}, "updating message status")
