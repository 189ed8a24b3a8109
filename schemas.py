"""
Database Schemas for the Portfolio API

Each Pydantic model = one MongoDB collection. Field names are the camelCase
keys the frontend sends and reads. Every field is optional: the API coerces
types but never rejects a record for a missing field.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Optional

SKILL_LEVELS = ("Beginner", "Intermediate", "Advanced", "Expert")


# Profile (single record, collection "intro")
class Intro(BaseModel):
    name: Optional[str] = None
    title: Optional[str] = None
    location: Optional[str] = None
    email: Optional[str] = None
    github: Optional[str] = None
    linkedin: Optional[str] = None
    profileImage: Optional[str] = None  # upload url
    resumeUrl: Optional[str] = None
    bio: Optional[str] = None


# Content
class Experience(BaseModel):
    yearRange: Optional[str] = None  # e.g. "2021 - 2023"
    title: Optional[str] = None
    institution: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None


class Skill(BaseModel):
    name: Optional[str] = None
    level: Optional[str] = Field(default=None, description="one of SKILL_LEVELS, not enforced")
    icon: Optional[str] = None


class Project(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = []
    githubLink: Optional[str] = None
    vercelLink: Optional[str] = None

    @field_validator("tags", mode="before")
    @classmethod
    def null_tags(cls, v):
        return [] if v is None else v


class Art(BaseModel):
    title: Optional[str] = None
    type: Optional[str] = None
    image: Optional[str] = None  # upload url


# Contact form; createdAt is stamped by the server
class ContactQuery(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    query: Optional[str] = None


# Auth
class AuthRequest(BaseModel):
    password: Any = None  # anything but a non-empty string is a failed login
