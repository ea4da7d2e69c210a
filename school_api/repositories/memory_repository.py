"""In-process storage backend with a JSON file backup for students."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from school_api.db.models import (
    InsertMessage,
    InsertStudent,
    InsertUser,
    Message,
    Student,
    StudentUpdate,
    User,
)
from school_api.repositories.base import Storage, new_message, new_student, new_user, student_matches
from school_api.repositories.json_storage import LoadStatus, StudentBackup

logger = logging.getLogger(__name__)


class MemoryStorage(Storage):
    """
    Dict-backed store for a single process.

    Students are reloaded from the backup file on initialization and the
    whole collection is rewritten after every student mutation. Users and
    messages only live as long as the process.
    """

    def __init__(self, backup: StudentBackup | str | Path) -> None:
        super().__init__()
        self.backup = backup if isinstance(backup, StudentBackup) else StudentBackup(backup)
        self.users: dict[int, User] = {}
        self.students: dict[int, Student] = {}
        self.messages: dict[int, Message] = {}
        self.current_user_id = 1
        self.current_student_id = 1
        self.current_message_id = 1
        self.last_load_status: LoadStatus | None = None
        self._save_lock = asyncio.Lock()

    async def _load(self) -> None:
        result = await asyncio.to_thread(self.backup.load)
        self.last_load_status = result.status
        if result.status is LoadStatus.FAILED:
            logger.warning("Student backup unreadable, starting with an empty student list")
        for student in result.students:
            self.students[student.id] = student
            if student.id >= self.current_student_id:
                self.current_student_id = student.id + 1
        logger.info("Loaded %d students from permanent storage", len(result.students))

    async def _save_students(self) -> None:
        # snapshot inside the lock so the file never falls back to an older collection
        async with self._save_lock:
            await asyncio.to_thread(self.backup.save, list(self.students.values()))

    # -------------------------- users --------------------------
    async def get_user(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        return next((user for user in self.users.values() if user.username == username), None)

    async def create_user(self, data: InsertUser) -> User:
        user_id = self.current_user_id
        self.current_user_id += 1
        user = new_user(user_id, data)
        self.users[user_id] = user
        return user

    # -------------------------- students --------------------------
    async def get_students(self) -> list[Student]:
        await self._ensure_ready()
        return list(self.students.values())

    async def get_student(self, student_id: int) -> Optional[Student]:
        await self._ensure_ready()
        return self.students.get(student_id)

    async def get_students_by_grade(self, grade: int) -> list[Student]:
        await self._ensure_ready()
        return [s for s in self.students.values() if s.grade == grade]

    async def create_student(self, data: InsertStudent) -> Student:
        await self._ensure_ready()
        student_id = self.current_student_id
        self.current_student_id += 1
        student = new_student(student_id, data)
        self.students[student_id] = student
        await self._save_students()
        return student

    async def update_student(self, student_id: int, data: StudentUpdate) -> Optional[Student]:
        await self._ensure_ready()
        student = self.students.get(student_id)
        if not student:
            return None
        updated = student.model_copy(update=data.changes())
        self.students[student_id] = updated
        await self._save_students()
        return updated

    async def delete_student(self, student_id: int) -> bool:
        await self._ensure_ready()
        removed = self.students.pop(student_id, None) is not None
        if removed:
            await self._save_students()
        return removed

    async def search_students(self, query: str) -> list[Student]:
        await self._ensure_ready()
        return [s for s in self.students.values() if student_matches(s, query)]

    # -------------------------- messages --------------------------
    async def get_messages(self) -> list[Message]:
        return list(self.messages.values())

    async def create_message(self, data: InsertMessage) -> Message:
        message_id = self.current_message_id
        self.current_message_id += 1
        message = new_message(message_id, data)
        self.messages[message_id] = message
        return message

    async def update_message_status(self, message_id: int, status: str) -> Optional[Message]:
        message = self.messages.get(message_id)
        if not message:
            return None
        updated = message.model_copy(update={"status": status})
        self.messages[message_id] = updated
        return updated
