"""Unit tests for the fundability scoring service."""

import pytest

from intake.exceptions import RegistryConfigurationError
from intake.models.quiz import FactorStatus, QuizQuestion, Rating, ScoreImpact, TierOutcome
from intake.services.scoring_service import (
    MAX_SCORE,
    QUIZ_QUESTIONS,
    FundabilityScoringService,
    check_weight_ceiling,
)

ALL_FAVORABLE = {
    "revenue_15k": "Yes",
    "six_months_old": "Yes",
    "online_bank": "No",
    "existing_positions": "No",
    "credit_above_550": "Yes",
    "consistent_deposits": "Yes",
    "nsf_overdrafts": "No",
}

ALL_UNFAVORABLE = {
    "revenue_15k": "No",
    "six_months_old": "No",
    "online_bank": "Yes",
    "existing_positions": "Yes",
    "position_count": "4+ positions",
    "credit_above_550": "No",
    "consistent_deposits": "No",
    "nsf_overdrafts": "Yes",
}


class TestFundabilityScoringService:
    """Test cases for fundability scoring."""

    def test_max_score_is_one_hundred(self):
        assert MAX_SCORE == 100

    def test_all_favorable_scores_max(self):
        result = FundabilityScoringService.score(ALL_FAVORABLE)
        assert result.score == MAX_SCORE
        assert result.percentage == 100
        assert result.rating == Rating.EXCELLENT
        assert all(f.status == FactorStatus.POSITIVE for f in result.factors)

    def test_all_unfavorable_scores_floor(self):
        result = FundabilityScoringService.score(ALL_UNFAVORABLE)
        assert result.score == 10
        assert result.percentage == 10
        assert result.rating == Rating.NEEDS_IMPROVEMENT

    def test_unanswered_questions_are_unfavorable(self):
        assert FundabilityScoringService.score({}).score == 10

    def test_answers_are_case_insensitive(self):
        answers = {key: value.lower() for key, value in ALL_FAVORABLE.items()}
        assert FundabilityScoringService.score(answers).score == MAX_SCORE

    @pytest.mark.parametrize(
        "position_count, points, status",
        [
            ("1 position", 10, FactorStatus.NEUTRAL),
            ("2 positions", 5, FactorStatus.NEUTRAL),
            ("3 positions", 0, FactorStatus.NEGATIVE),
            ("", 0, FactorStatus.NEGATIVE),
        ],
    )
    def test_existing_position_tiers(self, position_count, points, status):
        answers = {**ALL_FAVORABLE, "existing_positions": "Yes", "position_count": position_count}
        result = FundabilityScoringService.score(answers)
        assert result.score == MAX_SCORE - 15 + points
        factor = next(f for f in result.factors if f.name == "Existing Debt")
        assert factor.status == status

    def test_factors_keep_question_order(self):
        result = FundabilityScoringService.score(ALL_FAVORABLE)
        assert [f.name for f in result.factors] == [q.factor_name for q in QUIZ_QUESTIONS]

    def test_score_is_deterministic(self):
        first = FundabilityScoringService.score(ALL_UNFAVORABLE)
        second = FundabilityScoringService.score(ALL_UNFAVORABLE)
        assert first == second

    @pytest.mark.parametrize(
        "percentage, rating",
        [
            (100, Rating.EXCELLENT),
            (80, Rating.EXCELLENT),
            (79, Rating.GOOD),
            (60, Rating.GOOD),
            (59, Rating.FAIR),
            (40, Rating.FAIR),
            (39, Rating.NEEDS_IMPROVEMENT),
            (0, Rating.NEEDS_IMPROVEMENT),
        ],
    )
    def test_rating_thresholds(self, percentage, rating):
        assert FundabilityScoringService.rating_for(percentage) == rating

    def test_insight_positive_when_weight_is_not_lower(self):
        insight = FundabilityScoringService.insight_for("online_bank", "No")
        assert insight.is_positive is True
        assert insight.title == "Great!"

        insight = FundabilityScoringService.insight_for("online_bank", "yes")
        assert insight.is_positive is False
        assert insight.title == "Good to know"
        assert "Online banks" in insight.content


class TestWeightCeiling:
    """Test cases for the import-time weight check."""

    @staticmethod
    def _question(yes: int, no: int) -> QuizQuestion:
        return QuizQuestion(
            id=f"q_{yes}_{no}",
            factor_name="Factor",
            question="Question?",
            score_impact=ScoreImpact(yes=yes, no=no),
            outcomes={
                "Yes": TierOutcome(points=yes, status=FactorStatus.POSITIVE, description=""),
                "No": TierOutcome(points=no, status=FactorStatus.NEGATIVE, description=""),
            },
            unfavorable_answer="No",
        )

    def test_weights_must_sum_to_ceiling(self):
        with pytest.raises(RegistryConfigurationError):
            check_weight_ceiling((self._question(60, 0), self._question(30, 0)))

    def test_tier_table_must_match_score_impact(self):
        question = self._question(100, 0).model_copy(
            update={"score_impact": ScoreImpact(yes=90, no=0)}
        )
        with pytest.raises(RegistryConfigurationError):
            check_weight_ceiling((question,))

    def test_balanced_weights_pass(self):
        assert check_weight_ceiling((self._question(60, 0), self._question(0, 40))) == 100
