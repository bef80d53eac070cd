from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from intake.models.intake import FollowUpRule


class Rating(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    NEEDS_IMPROVEMENT = "Needs Improvement"


class FactorStatus(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class ScoreImpact(BaseModel):
    """Points awarded for each possible yes/no answer."""

    model_config = ConfigDict(frozen=True)

    yes: int
    no: int

    @property
    def maximum(self) -> int:
        return max(self.yes, self.no)


class TierOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    points: int
    status: FactorStatus
    description: str


class QuizQuestion(BaseModel):
    """A weighted yes/no question of the fundability quiz.

    ``outcomes`` holds the tier table for the answer. Keys are ``"Yes"`` and
    ``"No"``; a question whose favorable answer is refined by a follow-up
    (existing positions) lists per-refinement tiers in ``refinement_tiers``
    and scores the matching tier instead of its flat outcome.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    factor_name: str
    question: str
    subtext: str = ""
    score_impact: ScoreImpact
    outcomes: dict[str, TierOutcome]
    unfavorable_answer: str = Field(
        ..., description="Answer assumed when the question is left unanswered"
    )
    insight_yes: str = ""
    insight_no: str = ""
    follow_up: FollowUpRule | None = None
    refined_answer: str | None = None
    refinement_tiers: dict[str, TierOutcome] = Field(default_factory=dict)
    refinement_fallback: TierOutcome | None = None


class FundabilityFactor(BaseModel):
    name: str
    status: FactorStatus
    description: str


class FundabilityResult(BaseModel):
    score: int
    max_score: int
    percentage: int
    rating: Rating
    factors: list[FundabilityFactor] = Field(default_factory=list)
