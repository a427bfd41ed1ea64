from datetime import datetime
from uuid import uuid4
from sqlalchemy import Column, String, DateTime, Text, Integer, Float, UniqueConstraint, Index

from core.database import Base, GUID


class VocabularyWord(Base):
    """A learner's word plus its spaced-repetition state.

    ``next_review_at`` is written only from scheduler output, or from
    ``added_at`` at creation so new words are due immediately.
    """
    __tablename__ = "vocabulary_words"
    __table_args__ = (
        UniqueConstraint("user_id", "word", name="uq_vocabulary_words_user_word"),
        Index("ix_vocabulary_words_user_next_review", "user_id", "next_review_at"),
    )

    id = Column(GUID, primary_key=True, default=uuid4)
    user_id = Column(GUID, nullable=False, index=True)
    word = Column(String(255), nullable=False)  # lowercase, trimmed

    # Enrichment data, as supplied by the caller
    translation = Column(String(255))
    definition = Column(Text)  # source-language definition
    translated_definition = Column(Text)
    phonetic = Column(String(255))
    audio_url = Column(String(1000))
    example = Column(Text)
    word_type = Column(String(50))
    difficulty = Column(String(20))
    notes = Column(Text)

    # SM-2 state
    repetitions = Column(Integer, nullable=False, default=0)
    ease_factor = Column(Float, nullable=False, default=2.5)
    last_reviewed_at = Column(DateTime)
    next_review_at = Column(DateTime, nullable=False)

    added_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    @property
    def review_anchor(self) -> datetime:
        """Interval base: last review, or creation for never-reviewed words."""
        return self.last_reviewed_at or self.added_at
