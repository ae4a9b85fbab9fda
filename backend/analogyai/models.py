"""SQLAlchemy models for the AnalogyAI application."""

from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Boolean, JSON
from sqlalchemy.orm import relationship, declarative_base
import uuid

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """User model holding identity and personalization defaults."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_new_id, index=True)  # External identity id (e.g. Google profile id)
    email = Column(String, unique=True, nullable=True, index=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    profile_image_url = Column(String, nullable=True)

    # Personalization defaults
    personalization_interests = Column(JSON, default=list, nullable=False)
    default_knowledge_level = Column(String, default="intermediate", nullable=False)
    analogy_style = Column(String, default="conversational", nullable=False)
    save_history = Column(Boolean, default=True, nullable=False)  # Persist generated analogies

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    analogies = relationship("Analogy", back_populates="user", cascade="all, delete-orphan")


class Analogy(Base):
    """Analogy model representing one generated analogy and example."""

    __tablename__ = "analogies"

    id = Column(String, primary_key=True, default=_new_id, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    topic = Column(Text, nullable=False)
    user_input_context = Column(Text, nullable=True)

    # Personalization snapshot taken at generation time
    personalization_interests = Column(JSON, default=list, nullable=False)
    knowledge_level = Column(String, nullable=False)

    generated_analogy = Column(Text, nullable=False)
    generated_example = Column(Text, nullable=False)
    model_used = Column(String, default="gpt-4o", nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    is_favorite = Column(Boolean, default=False, nullable=False)

    # Relationships
    user = relationship("User", back_populates="analogies")
