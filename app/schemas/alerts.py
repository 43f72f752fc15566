"""
Pydantic schemas for tutor and parent alert emails.
"""

from pydantic import BaseModel, EmailStr, Field
from typing import List


class TutorAlert(BaseModel):
    student_id: str
    group_id: str
    criteria: List[str] = Field(min_length=1)
    description: str = Field(min_length=1)


class ParentAlert(BaseModel):
    student_id: str
    group_id: str
    parent_email: EmailStr
    message: str = Field(min_length=1)
