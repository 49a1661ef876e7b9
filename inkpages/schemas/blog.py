from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from inkpages.utils import parse_tags, to_epoch_ms


class PostSummary(BaseModel):
    id: str
    title: str
    excerpt: str = ""
    tags: List[str] = Field(default_factory=list)
    readingTime: int = Field(default=1, ge=1)
    published: bool = False
    publishedAt: Optional[int] = None
    createdAt: Optional[int] = None
    updatedAt: Optional[int] = None
    coverImage: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("title must not be empty")
        return value

    @field_validator("publishedAt", "createdAt", "updatedAt", mode="before")
    @classmethod
    def _normalize_timestamp(cls, value):
        return to_epoch_ms(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value):
        return parse_tags(value)

    @field_validator("readingTime", mode="before")
    @classmethod
    def _reading_time_floor(cls, value):
        if value is None:
            return 1
        return max(1, int(value))


class Post(PostSummary):
    content: str = ""

    def summary(self) -> PostSummary:
        return PostSummary(**self.model_dump(exclude={"content"}))


class PostForm(BaseModel):
    """Authoring input, as typed into the editor."""

    title: str = ""
    content: str = ""
    excerpt: str = ""
    tags: Union[str, List[str]] = ""
    published: Optional[bool] = None
    publishedAt: Optional[Union[int, str]] = None
    coverImage: Optional[str] = None

    def is_empty(self) -> bool:
        return not (
            self.title.strip()
            or self.content.strip()
            or self.excerpt.strip()
            or parse_tags(self.tags)
        )


class Draft(BaseModel):
    postId: Optional[str] = None
    title: str = ""
    content: str = ""
    excerpt: str = ""
    tags: str = ""
    coverImage: Optional[str] = None
    lastSaved: Optional[int] = None

    @field_validator("lastSaved", mode="before")
    @classmethod
    def _normalize_timestamp(cls, value):
        return to_epoch_ms(value)


class PostPage(BaseModel):
    post: Post
    html: str
    seo: Dict[str, Any] = Field(default_factory=dict)
    structuredData: Dict[str, Any] = Field(default_factory=dict)


class EditorPayload(BaseModel):
    post: Post
    draft: Optional[Draft] = None


class Dashboard(BaseModel):
    total: int
    published: int
    drafts: int
    posts: List[PostSummary] = Field(default_factory=list)


class ArchiveYear(BaseModel):
    year: int
    posts: List[PostSummary] = Field(default_factory=list)


class LoginRequest(BaseModel):
    email: str
    password: str


class SessionInfo(BaseModel):
    email: Optional[str] = None
    isWriter: bool = False


class ImageUploadResult(BaseModel):
    url: str
    size: int
