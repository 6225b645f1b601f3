"""Pydantic schemas for login."""

from __future__ import annotations

from pydantic import BaseModel, Field


class UserRecord(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UsersFile(BaseModel):
    users: list[UserRecord] = Field(default_factory=list)


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    success: bool
    username: str
