"""
Pydantic schemas for numbered group activities and their materials.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ActivityCreate(BaseModel):
    name: str = Field(min_length=1)
    group_id: str
    development: Optional[str] = None
    deliverable: Optional[str] = None
    score: Optional[float] = Field(default=None, ge=0)
    due_date: Optional[datetime] = None
    allow_late_submissions: bool = True
    extra_materials: List[str] = Field(default_factory=list)
    links: List[str] = Field(default_factory=list)


class ActivityUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    group_id: Optional[str] = None
    development: Optional[str] = None
    deliverable: Optional[str] = None
    score: Optional[float] = Field(default=None, ge=0)
    due_date: Optional[datetime] = None
    allow_late_submissions: Optional[bool] = None
    extra_materials: Optional[List[str]] = None
    links: Optional[List[str]] = None


class MoveMaterials(BaseModel):
    """Materials and links to move from one activity to another."""

    target_activity_id: str
    extra_materials: List[str] = Field(default_factory=list)
    links: List[str] = Field(default_factory=list)
