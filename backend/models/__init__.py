
from models.vocabulary import VocabularyWord
from models.exercise import Exercise
from models.progress import UserProgress
from models.activity import ActivityLog

__all__ = [
    "VocabularyWord",
    "Exercise",
    "UserProgress",
    "ActivityLog",
]
