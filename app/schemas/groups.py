"""
Pydantic schemas for groups, group chat, announcements and the resource library.
"""

from pydantic import BaseModel, Field
from typing import List, Literal, Optional


# ---- Groups ----
class GroupCreate(BaseModel):
    name: str
    grade: str
    letter: str
    specialty: Optional[str] = None
    shift: Optional[str] = None
    teacher_id: Optional[str] = None
    tutor_id: Optional[str] = None
    color: Optional[str] = None


class GroupUpdate(BaseModel):
    name: Optional[str] = None
    specialty: Optional[str] = None
    shift: Optional[str] = None
    teacher_id: Optional[str] = None
    tutor_id: Optional[str] = None
    color: Optional[str] = None
    status: Optional[Literal["active", "archived"]] = None


class GroupStudentsAdd(BaseModel):
    student_ids: List[str] = Field(min_length=1)


# ---- Group Chat ----
class ChatMessageCreate(BaseModel):
    content: str = Field(min_length=1)


# ---- Announcements ----
class AnnouncementCreate(BaseModel):
    title: str
    content: str
    group_id: Optional[str] = None  # None = all groups
    priority: Literal["low", "medium", "high"] = "medium"


# ---- Resources ----
class ResourceCreate(BaseModel):
    title: str
    description: Optional[str] = None
    type: Literal["file", "link"]
    content: str  # URL of the link or the stored file
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    group_id: Optional[str] = None


class ResourceUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    group_id: Optional[str] = None
