"""
Pydantic request/response models for the HTTP API.

Response models read straight from duetrack.model dataclasses (from_attributes).
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class CourseCreate(BaseModel):
    code: str
    name: str


class CourseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    name: str


class AssignmentCreate(BaseModel):
    title: str
    due_date: datetime
    course_code: str
    url: Optional[str] = None
    session_id: Optional[str] = None


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    url: Optional[str] = None
    due_date: datetime
    course_code: str
    session_id: Optional[str] = None
    completed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    course: Optional[CourseOut] = None


class CompleteRequest(BaseModel):
    completed: bool = True


class SessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime


class SessionDetail(SessionOut):
    assignments: List[AssignmentOut] = []


class LinksOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    session_url: str
    feed_url: str
    subscribe_url: str
