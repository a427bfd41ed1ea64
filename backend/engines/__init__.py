from engines.srs import SRSEngine, SRSSchedule, schedule, round_half_up
from engines.gamification import (
    ProgressState,
    apply_completion,
    apply_check_in,
    calculate_level,
    calculate_xp_earned,
    upcoming_milestones,
)
from engines.oracle import ContentOracle, OpenAIContentOracle, FreeTextScore, get_content_oracle
from engines.exercises import ExerciseGenerator, ExerciseKind, ExerciseDraft, WordCard
from engines.scoring import ExerciseEvaluator, ScoreCard
from engines.learning import LearningEngine, SubmissionOutcome

__all__ = [
    "SRSEngine",
    "SRSSchedule",
    "schedule",
    "round_half_up",
    "ProgressState",
    "apply_completion",
    "apply_check_in",
    "calculate_level",
    "calculate_xp_earned",
    "upcoming_milestones",
    "ContentOracle",
    "OpenAIContentOracle",
    "FreeTextScore",
    "get_content_oracle",
    "ExerciseGenerator",
    "ExerciseKind",
    "ExerciseDraft",
    "WordCard",
    "ExerciseEvaluator",
    "ScoreCard",
    "LearningEngine",
    "SubmissionOutcome",
]
