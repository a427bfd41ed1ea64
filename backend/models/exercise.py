from datetime import datetime
from uuid import uuid4
from sqlalchemy import Column, String, DateTime, Boolean, JSON, Index

from core.database import Base, GUID


class Exercise(Base):
    """A generated practice item; immutable once ``is_completed`` is set.

    ``question``/``options``/``correct_answer`` are JSON payloads whose shape
    depends on ``exercise_type``. ``word_ids[0]`` is the primary target word.
    """
    __tablename__ = "exercises"
    __table_args__ = (
        Index("ix_exercises_user_generated", "user_id", "generated_at"),
    )

    id = Column(GUID, primary_key=True, default=uuid4)
    user_id = Column(GUID, nullable=False, index=True)
    word_ids = Column(JSON, nullable=False, default=list)  # list of word UUID strings
    exercise_type = Column(String(50), nullable=False)
    question = Column(JSON, nullable=False)
    options = Column(JSON)
    correct_answer = Column(JSON)  # null for oracle-scored types
    is_completed = Column(Boolean, nullable=False, default=False)
    result = Column(JSON)  # {user_answer, is_correct, feedback, score, srs_quality}
    generated_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime)

    @property
    def primary_word_id(self) -> str | None:
        return self.word_ids[0] if self.word_ids else None
