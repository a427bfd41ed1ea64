from datetime import datetime
from uuid import uuid4
from sqlalchemy import Column, String, DateTime, Text, JSON

from core.database import Base, GUID


class ActivityLog(Base):
    """Append-only learner activity feed"""
    __tablename__ = "activity_logs"

    id = Column(GUID, primary_key=True, default=uuid4)
    user_id = Column(GUID, nullable=False, index=True)
    activity_type = Column(String(50), nullable=False)  # add_word, review_word, complete_exercise, ...
    description = Column(Text, nullable=False)
    target_id = Column(String(64))
    details = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
