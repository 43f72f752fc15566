"""
Pydantic schemas for authentication and user management.
"""

from pydantic import BaseModel
from typing import Literal, Optional


UserRole = Literal["admin", "teacher", "student", "tutor", "parent"]
AccountStatus = Literal["pending", "active", "inactive"]


class UserLogin(BaseModel):
    email: str
    password: str


class UserProfile(BaseModel):
    id: str
    email: str
    name: str
    role: UserRole
    status: AccountStatus = "active"
    parent_id: Optional[str] = None
    ai_grading_enabled: bool = False


class UserUpdate(BaseModel):
    role: Optional[UserRole] = None
    status: Optional[AccountStatus] = None
    ai_grading_enabled: Optional[bool] = None
