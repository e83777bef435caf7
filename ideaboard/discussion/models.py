from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _coerce_id(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    return value


def _null_as_empty(value: Any) -> Any:
    return "" if value is None else value


def _null_as_zero(value: Any) -> Any:
    return 0 if value is None else value


class Author(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    first_name: str = Field(default="", validation_alias=AliasChoices("firstName", "first_name"))
    last_name: str = Field(default="", validation_alias=AliasChoices("lastName", "last_name"))

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def _null_names(cls, value: Any) -> Any:
        return _null_as_empty(value)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or "Unknown"


def format_timestamp(raw: Optional[str]) -> str:
    """Human readable date; unparseable values are returned untouched."""
    if not raw:
        return ""
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return raw
    return parsed.strftime("%d %B %Y, %H:%M")


class Comment(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    content: str = ""
    author: Author = Field(default_factory=Author)
    parent_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("parentId", "parent_id"))
    created_at: Optional[str] = Field(default=None, validation_alias=AliasChoices("createdAt", "created_at"))
    idea_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("ideaId", "idea_id"))

    @field_validator("id", "parent_id", "idea_id", mode="before")
    @classmethod
    def _ids_as_text(cls, value: Any) -> Any:
        value = _coerce_id(value)
        # Some payloads send "" for "no parent"
        if value == "":
            return None
        return value

    @field_validator("content", mode="before")
    @classmethod
    def _null_content(cls, value: Any) -> Any:
        return _null_as_empty(value)

    @field_validator("author", mode="before")
    @classmethod
    def _missing_author(cls, value: Any) -> Any:
        # Deleted users come back as null
        return Author() if value is None else value

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def display_date(self) -> str:
        return format_timestamp(self.created_at)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "author": {
                "firstName": self.author.first_name,
                "lastName": self.author.last_name,
                "displayName": self.author.display_name,
            },
            "parentId": self.parent_id,
            "createdAt": self.created_at,
            "displayDate": self.display_date,
        }


class IdeaEngagementCounters(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    likes: int = Field(default=0, ge=0)
    dislikes: int = Field(default=0, ge=0)

    @field_validator("likes", "dislikes", mode="before")
    @classmethod
    def _missing_as_zero(cls, value: Any) -> Any:
        return _null_as_zero(value)


class Idea(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    title: str = ""
    description: str = ""
    likes: int = 0
    dislikes: int = 0
    created_at: Optional[str] = Field(default=None, validation_alias=AliasChoices("createdAt", "created_at"))
    author: Author = Field(default_factory=Author)
    topic_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("topicId", "topic_id"))
    attachments: List[str] = Field(default_factory=list)

    @field_validator("id", "topic_id", mode="before")
    @classmethod
    def _ids_as_text(cls, value: Any) -> Any:
        return _coerce_id(value)

    @field_validator("title", "description", mode="before")
    @classmethod
    def _null_text(cls, value: Any) -> Any:
        return _null_as_empty(value)

    @field_validator("likes", "dislikes", mode="before")
    @classmethod
    def _missing_as_zero(cls, value: Any) -> Any:
        return _null_as_zero(value)

    @field_validator("author", mode="before")
    @classmethod
    def _missing_author(cls, value: Any) -> Any:
        return Author() if value is None else value

    @field_validator("attachments", mode="before")
    @classmethod
    def _coerce_attachments(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if not isinstance(value, list):
            return []
        # Non-text entries are dropped here; text is validated by the codec on render
        return [item for item in value if isinstance(item, str)]

    @property
    def counters(self) -> IdeaEngagementCounters:
        return IdeaEngagementCounters(likes=max(0, self.likes), dislikes=max(0, self.dislikes))
