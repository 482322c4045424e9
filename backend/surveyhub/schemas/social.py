"""Likes and comments Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class CommentCreate(BaseModel):
    """Schema for creating a comment."""
    content: str = Field(..., min_length=1, max_length=10000)

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Comment content cannot be empty")
        return value


class CommentResponse(BaseModel):
    """Schema for comment responses."""
    id: int
    template_id: int
    author_id: int
    author_name: str
    content: str
    created_at: datetime


class LikeStatus(BaseModel):
    liked: bool
    like_count: int
