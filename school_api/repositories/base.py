"""Storage interface shared by the memory and MongoDB backends."""
from __future__ import annotations

import abc
import asyncio
import enum
import logging
from datetime import datetime, timezone
from typing import Optional

from school_api.db.models import (
    MESSAGE_STATUS_PENDING,
    InsertMessage,
    InsertStudent,
    InsertUser,
    Message,
    Student,
    StudentUpdate,
    User,
)

logger = logging.getLogger(__name__)


class StoreState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


def _now() -> datetime:
    # BSON dates keep milliseconds only
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def new_user(user_id: int, data: InsertUser) -> User:
    return User(id=user_id, username=data.username, password=data.password)


def new_student(student_id: int, data: InsertStudent) -> Student:
    return Student(
        id=student_id,
        student_id=data.student_id,
        name=data.name,
        grade=data.grade,
        phone=data.phone,
        notes=data.notes or None,
        created_at=_now(),
    )


def new_message(message_id: int, data: InsertMessage) -> Message:
    return Message(
        id=message_id,
        body=data.body,
        # 0 is treated like "all grades", same as a missing value
        target_grade=data.target_grade or None,
        status=MESSAGE_STATUS_PENDING,
        created_at=_now(),
    )


def student_matches(student: Student, query: str) -> bool:
    """Substring search over name, code, phone and notes (phone is case-sensitive)."""
    needle = query.lower()
    return (
        needle in student.name.lower()
        or needle in student.student_id.lower()
        or query in student.phone
        or (student.notes is not None and needle in student.notes.lower())
    )


class Storage(abc.ABC):
    """
    Async storage contract consumed by the rest of the application.

    Lookups never raise for missing records: they return None, an empty
    list or False. Stores are constructed explicitly, initialized once
    (``initialize``) and released with ``close``; any operation called
    before ``initialize`` triggers it.
    """

    def __init__(self) -> None:
        self._state = StoreState.UNINITIALIZED
        self._init_lock = asyncio.Lock()

    @property
    def state(self) -> StoreState:
        return self._state

    async def initialize(self) -> None:
        if self._state is StoreState.READY:
            return
        async with self._init_lock:
            if self._state is StoreState.READY:
                return
            self._state = StoreState.INITIALIZING
            try:
                await self._load()
            finally:
                # a failed load still leaves a usable, empty store
                self._state = StoreState.READY

    async def _ensure_ready(self) -> None:
        if self._state is not StoreState.READY:
            await self.initialize()

    async def close(self) -> None:
        return None

    @abc.abstractmethod
    async def _load(self) -> None:
        """Populate internal state (counters, cached records)."""

    # -------------------------- users --------------------------
    @abc.abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]: ...

    @abc.abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abc.abstractmethod
    async def create_user(self, data: InsertUser) -> User: ...

    # -------------------------- students --------------------------
    @abc.abstractmethod
    async def get_students(self) -> list[Student]: ...

    @abc.abstractmethod
    async def get_student(self, student_id: int) -> Optional[Student]: ...

    @abc.abstractmethod
    async def get_students_by_grade(self, grade: int) -> list[Student]: ...

    @abc.abstractmethod
    async def create_student(self, data: InsertStudent) -> Student: ...

    @abc.abstractmethod
    async def update_student(self, student_id: int, data: StudentUpdate) -> Optional[Student]: ...

    @abc.abstractmethod
    async def delete_student(self, student_id: int) -> bool: ...

    @abc.abstractmethod
    async def search_students(self, query: str) -> list[Student]: ...

    # -------------------------- messages --------------------------
    @abc.abstractmethod
    async def get_messages(self) -> list[Message]: ...

    @abc.abstractmethod
    async def create_message(self, data: InsertMessage) -> Message: ...

    @abc.abstractmethod
    async def update_message_status(self, message_id: int, status: str) -> Optional[Message]: ...
