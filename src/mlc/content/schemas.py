"""Request/response schemas for blogs, careers and announcements."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

AnnouncementType = Literal["INFO", "UPDATE", "WARNING", "PROMOTION", "MAINTENANCE"]
AnnouncementPriority = Literal["LOW", "NORMAL", "HIGH", "URGENT"]


# --- Blogs ---


class BlogCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    slug: str | None = Field(default=None, max_length=240)
    description: str = Field(min_length=1)
    content: str = Field(min_length=1)
    excerpt: str | None = None
    featured_image: str | None = None
    tags: list[str] = []
    category: str | None = None
    is_published: bool = False


class BlogUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    slug: str | None = Field(default=None, max_length=240)
    description: str | None = Field(default=None, min_length=1)
    content: str | None = Field(default=None, min_length=1)
    excerpt: str | None = None
    featured_image: str | None = None
    tags: list[str] | None = None
    category: str | None = None
    is_published: bool | None = None


class BlogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    description: str
    content: str
    excerpt: str | None = None
    featured_image: str | None = None
    tags: list[str] = []
    category: str | None = None
    is_published: bool
    published_at: datetime | None = None
    created_by: str
    last_edited_by: str | None = None
    created_at: datetime
    updated_at: datetime


# --- Careers ---


class CareerCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    slug: str | None = Field(default=None, max_length=240)
    description: str = Field(min_length=1)
    content: str = Field(min_length=1)
    department: str = Field(min_length=1, max_length=100)
    location: str = Field(min_length=1, max_length=100)
    job_type: str | None = None
    experience: str | None = None
    salary: str | None = None
    requirements: list[str] = []
    benefits: list[str] = []
    is_published: bool = False
    expires_at: datetime | None = None


class CareerUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    slug: str | None = Field(default=None, max_length=240)
    description: str | None = Field(default=None, min_length=1)
    content: str | None = Field(default=None, min_length=1)
    department: str | None = Field(default=None, min_length=1, max_length=100)
    location: str | None = Field(default=None, min_length=1, max_length=100)
    job_type: str | None = None
    experience: str | None = None
    salary: str | None = None
    requirements: list[str] | None = None
    benefits: list[str] | None = None
    is_published: bool | None = None
    expires_at: datetime | None = None


class CareerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    description: str
    content: str
    department: str
    location: str
    job_type: str | None = None
    experience: str | None = None
    salary: str | None = None
    requirements: list[str] = []
    benefits: list[str] = []
    is_published: bool
    published_at: datetime | None = None
    expires_at: datetime | None = None
    created_by: str
    created_at: datetime
    updated_at: datetime


# --- Announcements ---


class AnnouncementCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    type: AnnouncementType = "INFO"
    priority: AnnouncementPriority = "NORMAL"
    target_audience: list[str] = ["all"]
    is_active: bool = True
    is_published: bool = False
    published_at: datetime | None = None
    expires_at: datetime | None = None


class AnnouncementUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    content: str | None = Field(default=None, min_length=1)
    type: AnnouncementType | None = None
    priority: AnnouncementPriority | None = None
    target_audience: list[str] | None = None
    is_active: bool | None = None
    is_published: bool | None = None
    published_at: datetime | None = None
    expires_at: datetime | None = None


class AnnouncementToggleRequest(BaseModel):
    is_active: bool


class AnnouncementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    content: str
    type: str
    priority: str
    target_audience: list[str] = []
    is_active: bool
    is_published: bool
    published_at: datetime | None = None
    expires_at: datetime | None = None
    view_count: int = 0
    click_count: int = 0
    created_at: datetime


class ContentActionResponse(BaseModel):
    success: bool = True
    message: str
