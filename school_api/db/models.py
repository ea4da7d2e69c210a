"""Pydantic records mirroring the documents stored for users, students and messages."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

MESSAGE_STATUS_PENDING = "pending"


class _Shape(BaseModel):
    # camelCase on disk and in MongoDB, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class _Record(_Shape):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class InsertUser(_Shape):
    username: str
    password: str


class User(_Record):
    id: int
    username: str
    password: str


class InsertStudent(_Shape):
    student_id: str
    name: str
    grade: int
    phone: str
    notes: Optional[str] = None


class StudentUpdate(_Shape):
    """Partial student input; only fields the caller explicitly set are applied."""

    student_id: Optional[str] = None
    name: Optional[str] = None
    grade: Optional[int] = None
    phone: Optional[str] = None
    notes: Optional[str] = None

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        # notes is the only field that may be cleared
        return {key: value for key, value in data.items() if value is not None or key == "notes"}

    def document_changes(self) -> dict:
        return {to_camel(key): value for key, value in self.changes().items()}


class Student(_Record):
    id: int
    student_id: str
    name: str
    grade: int
    phone: str
    notes: Optional[str] = None
    created_at: datetime


class InsertMessage(_Shape):
    body: str
    target_grade: Optional[int] = None


class Message(_Record):
    id: int
    body: str
    target_grade: Optional[int] = None
    status: str = MESSAGE_STATUS_PENDING
    created_at: datetime
