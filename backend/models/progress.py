from sqlalchemy import Column, Date, Integer

from core.database import Base, GUID


class UserProgress(Base):
    """Gamified progress counters, one row per learner.

    ``level`` is derived from ``xp`` on read and never stored.
    """
    __tablename__ = "user_progress"

    user_id = Column(GUID, primary_key=True)
    xp = Column(Integer, nullable=False, default=0)
    streak = Column(Integer, nullable=False, default=0)
    last_activity_date = Column(Date)
    last_check_in_date = Column(Date)
    beta_rewards = Column(Integer, nullable=False, default=0)

    @property
    def level(self) -> int:
        from engines.gamification import calculate_level

        return calculate_level(self.xp or 0)
