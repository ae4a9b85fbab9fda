"""Pydantic request, response and record models.

JSON field names are camelCase on the wire; attribute names stay snake_case.
"""

from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

KnowledgeLevel = Literal["beginner", "intermediate", "advanced"]
AnalogyStyle = Literal["conversational", "technical", "creative"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==================== Requests ====================

class Personalization(CamelModel):
    interests: List[str] = Field(default_factory=list)
    knowledge_level: KnowledgeLevel = "intermediate"


class GenerateAnalogyIn(CamelModel):
    # Passed through verbatim; only an empty string is rejected.
    topic: str = Field(min_length=1)
    context: Optional[str] = None
    personalization: Personalization


class RegenerateAnalogyIn(CamelModel):
    previous_analogy_id: str = Field(min_length=1)
    feedback: str


class FavoriteIn(CamelModel):
    is_favorite: bool


class FeedbackIn(CamelModel):
    helpful: bool


class UpdateProfileIn(CamelModel):
    """Partial profile update. Unknown fields are rejected."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    personalization_interests: Optional[List[str]] = None
    default_knowledge_level: Optional[KnowledgeLevel] = None
    analogy_style: Optional[AnalogyStyle] = None
    save_history: Optional[bool] = None


# ==================== Records ====================

class UserUpsert(BaseModel):
    """Identity fields supplied at sign-in."""

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


class UserRecord(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    personalization_interests: List[str] = Field(default_factory=list)
    default_knowledge_level: KnowledgeLevel = "intermediate"
    analogy_style: AnalogyStyle = "conversational"
    save_history: bool = True
    created_at: Optional[datetime] = None


class NewAnalogy(BaseModel):
    user_id: str
    topic: str
    user_input_context: Optional[str] = None
    personalization_interests: List[str] = Field(default_factory=list)
    knowledge_level: KnowledgeLevel
    generated_analogy: str
    generated_example: str
    model_used: str


class AnalogyRecord(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    topic: str
    user_input_context: Optional[str] = None
    personalization_interests: List[str] = Field(default_factory=list)
    knowledge_level: KnowledgeLevel
    generated_analogy: str
    generated_example: str
    model_used: str
    created_at: datetime
    is_favorite: bool = False


class AnalogyContent(BaseModel):
    """Parsed provider reply."""

    analogy: str
    example: str


# ==================== Responses ====================

class AnalogyOut(CamelModel):
    id: Optional[str] = None
    topic: str
    analogy: str
    example: str
    created_at: datetime


class HistoryItemOut(CamelModel):
    id: str
    topic: str
    analogy: str
    example: str
    created_at: datetime
    is_favorite: bool


class HistoryOut(CamelModel):
    analogies: List[HistoryItemOut]
    has_more: bool


class FavoriteOut(CamelModel):
    success: bool = True
    is_favorite: bool


class FeedbackOut(CamelModel):
    success: bool = True
    message: str


class MessageOut(BaseModel):
    message: str
