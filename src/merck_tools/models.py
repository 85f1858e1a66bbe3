from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatMessage(BaseModel):
    """A normalized chat turn; both fields are non-blank strings."""

    role: str
    content: str

    model_config = ConfigDict(frozen=True)

    @field_validator("role", "content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class OAuthResponse(BaseModel):
    """Uniform envelope for OAuth calls: HTTP status plus parsed body."""

    status: int
    data: Any = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class PhotoResponse(BaseModel):
    status: int
    body: bytes = b""
    content_type: str = "application/octet-stream"

    @property
    def ok(self) -> bool:
        return self.status == 200 and len(self.body) > 0


class DevProfile(BaseModel):
    email: str
    name: str
    given_name: str
    family_name: str = ""
    roles: List[str] = Field(default_factory=list)
    isid: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


__all__ = ["ChatMessage", "OAuthResponse", "PhotoResponse", "DevProfile"]
