import math
from collections.abc import Mapping

from intake.exceptions import RegistryConfigurationError
from intake.models.intake import FollowUpRule, QuizInsight
from intake.models.quiz import (
    FactorStatus,
    FundabilityFactor,
    FundabilityResult,
    QuizQuestion,
    Rating,
    ScoreImpact,
    TierOutcome,
)
from intake.utils.logger import LoggerMixin, log_fundability_score

MAX_SCORE_CEILING = 100

REVENUE_RANGES = (
    "Under $10,000",
    "$10,000 - $15,000",
    "$15,000 - $25,000",
    "$25,000 - $50,000",
    "$50,000 - $100,000",
    "$100,000 - $250,000",
    "$250,000+",
)

BUSINESS_AGE_OPTIONS = (
    "Less than 3 months",
    "3-5 months",
    "6-12 months",
    "1-2 years",
    "2-5 years",
    "More than 5 years",
)

ONLINE_BANKS = (
    "Chime",
    "Varo",
    "Dave",
    "Current",
    "PayPal Business",
    "Venmo Business",
    "Cash App Business",
    "Novo",
    "BlueVine",
    "Mercury",
    "Other Online Bank",
)

POSITION_COUNTS = ("1 position", "2 positions", "3 positions", "4+ positions")

CREDIT_RANGES = (
    "Below 500",
    "500 - 550",
    "550 - 600",
    "600 - 650",
    "650 - 700",
    "700 - 750",
    "750+",
)

YES = "Yes"
NO = "No"


def _follow_up(target_key: str, question: str, options, insight: str) -> FollowUpRule:
    return FollowUpRule(
        trigger_answers=frozenset({"yes"}),
        target_key=target_key,
        question=question,
        options=tuple(options),
        insight=insight,
    )


QUIZ_QUESTIONS: tuple[QuizQuestion, ...] = (
    QuizQuestion(
        id="revenue_15k",
        factor_name="Monthly Revenue",
        question="Does your business generate at least $15,000 per month in revenue?",
        subtext="This includes all business income deposited into your bank account.",
        score_impact=ScoreImpact(yes=25, no=0),
        outcomes={
            YES: TierOutcome(
                points=25,
                status=FactorStatus.POSITIVE,
                description="Your revenue meets the minimum threshold for most funding programs.",
            ),
            NO: TierOutcome(
                points=0,
                status=FactorStatus.NEGATIVE,
                description="Revenue below $15K/month may limit your funding options.",
            ),
        },
        unfavorable_answer=NO,
        insight_yes="Excellent! $15,000+ monthly revenue opens up most business funding programs. Higher revenue typically means better rates and terms.",
        insight_no="Most traditional business funding requires minimum $15,000/month in revenue. Don't worry - there may still be options available, and we can help you prepare for future funding.",
        follow_up=_follow_up(
            "revenue_amount",
            "What's your approximate monthly revenue range?",
            [r for r in REVENUE_RANGES if "Under" not in r],
            "This helps us match you with the right funding amount.",
        ),
    ),
    QuizQuestion(
        id="six_months_old",
        factor_name="Time in Business",
        question="Has your business been operating for at least 6 months?",
        subtext="Time since you started accepting payments and making deposits.",
        score_impact=ScoreImpact(yes=20, no=0),
        outcomes={
            YES: TierOutcome(
                points=20,
                status=FactorStatus.POSITIVE,
                description="Your business has sufficient operating history.",
            ),
            NO: TierOutcome(
                points=0,
                status=FactorStatus.NEGATIVE,
                description="Less than 6 months may limit traditional funding options.",
            ),
        },
        unfavorable_answer=NO,
        insight_yes="Great! Six months of business history qualifies you for most funding programs. Longer operating history typically leads to better approval odds.",
        insight_no="Newer businesses have fewer options, but some programs accept businesses as young as 3 months. You're building the foundation for future funding opportunities.",
        follow_up=_follow_up(
            "business_age",
            "How long has your business been operating?",
            [a for a in BUSINESS_AGE_OPTIONS if "Less than" not in a],
            "Longer operating history can qualify you for larger funding amounts.",
        ),
    ),
    QuizQuestion(
        id="online_bank",
        factor_name="Banking Relationship",
        question="Do you use an online-only bank for your business?",
        subtext="Examples: Chime, Varo, Dave, Cash App, PayPal, Venmo",
        score_impact=ScoreImpact(yes=5, no=15),
        outcomes={
            NO: TierOutcome(
                points=15,
                status=FactorStatus.POSITIVE,
                description="Traditional banking is preferred by most lenders.",
            ),
            YES: TierOutcome(
                points=5,
                status=FactorStatus.NEUTRAL,
                description="Online banking may limit some funding options but alternatives exist.",
            ),
        },
        unfavorable_answer=YES,
        insight_yes="Online banks can limit funding options as many lenders prefer traditional banks. Some lenders do work with online banks, but terms may vary.",
        insight_no="Traditional banking is preferred by most lenders. This gives you access to a wider range of funding options with potentially better terms.",
        follow_up=_follow_up(
            "which_online_bank",
            "Which online bank do you use?",
            ONLINE_BANKS,
            "Different online banks have varying acceptance rates with lenders.",
        ),
    ),
    QuizQuestion(
        id="existing_positions",
        factor_name="Existing Debt",
        question="Do you currently have any existing business financing?",
        subtext="MCAs, term loans, lines of credit, or other business debt payments.",
        score_impact=ScoreImpact(yes=5, no=15),
        outcomes={
            NO: TierOutcome(
                points=15,
                status=FactorStatus.POSITIVE,
                description="No existing positions means more funding capacity.",
            ),
        },
        unfavorable_answer=YES,
        insight_yes="Existing positions don't disqualify you, but they affect available options. Many businesses consolidate existing debt into better terms through refinancing.",
        insight_no="No existing positions means you have full funding capacity available. This typically results in better rates and terms.",
        follow_up=_follow_up(
            "position_count",
            "How many active positions do you currently have?",
            POSITION_COUNTS,
            "Fewer positions generally means more funding capacity and better consolidation options.",
        ),
        refined_answer=YES,
        refinement_tiers={
            "1 position": TierOutcome(
                points=10,
                status=FactorStatus.NEUTRAL,
                description="One existing position is manageable for most consolidation programs.",
            ),
            "2 positions": TierOutcome(
                points=5,
                status=FactorStatus.NEUTRAL,
                description="Multiple positions may affect terms but options still exist.",
            ),
        },
        refinement_fallback=TierOutcome(
            points=0,
            status=FactorStatus.NEGATIVE,
            description="Multiple positions significantly impact funding options.",
        ),
    ),
    QuizQuestion(
        id="credit_above_550",
        factor_name="Personal Credit",
        question="Is your personal credit score above 550?",
        subtext="An estimate is fine - we won't pull your credit without permission.",
        score_impact=ScoreImpact(yes=15, no=5),
        outcomes={
            YES: TierOutcome(
                points=15,
                status=FactorStatus.POSITIVE,
                description="Credit above 550 qualifies for most business funding programs.",
            ),
            NO: TierOutcome(
                points=5,
                status=FactorStatus.NEUTRAL,
                description="Credit below 550 limits options but revenue-based programs are available.",
            ),
        },
        unfavorable_answer=NO,
        insight_yes="Credit above 550 qualifies you for most business funding programs. While personal credit matters, business cash flow often weighs more heavily.",
        insight_no="Credit below 550 limits some options, but revenue-based funding programs focus more on your business performance than personal credit history.",
        follow_up=_follow_up(
            "credit_range",
            "What's your approximate credit score range?",
            [c for c in CREDIT_RANGES if "Below" not in c],
            "Higher credit scores can unlock better rates and terms.",
        ),
    ),
    QuizQuestion(
        id="consistent_deposits",
        factor_name="Cash Flow Consistency",
        question="Does your business have consistent monthly deposits?",
        subtext="Regular income coming into your business bank account each month.",
        score_impact=ScoreImpact(yes=5, no=0),
        outcomes={
            YES: TierOutcome(
                points=5,
                status=FactorStatus.POSITIVE,
                description="Consistent deposits demonstrate business stability.",
            ),
            NO: TierOutcome(
                points=0,
                status=FactorStatus.NEGATIVE,
                description="Inconsistent deposits may raise concerns for lenders.",
            ),
        },
        unfavorable_answer=NO,
        insight_yes="Consistent deposits demonstrate business stability and reliable cash flow. This is one of the most important factors lenders evaluate.",
        insight_no="Inconsistent deposits can raise concerns for lenders. Seasonal businesses may need to provide additional documentation showing revenue patterns.",
    ),
    QuizQuestion(
        id="nsf_overdrafts",
        factor_name="Account Health",
        question="Has your business account had NSF fees or negative balances in the past 90 days?",
        subtext="Insufficient funds fees, overdrafts, or negative daily balances.",
        score_impact=ScoreImpact(yes=0, no=5),
        outcomes={
            NO: TierOutcome(
                points=5,
                status=FactorStatus.POSITIVE,
                description="Clean account history with no overdrafts.",
            ),
            YES: TierOutcome(
                points=0,
                status=FactorStatus.NEGATIVE,
                description="NSF fees and overdrafts can impact approval chances.",
            ),
        },
        unfavorable_answer=YES,
        insight_yes="Frequent NSF fees and overdrafts can impact approval decisions. Lenders view this as a sign of cash flow management challenges.",
        insight_no="A clean account history with no overdrafts is a positive signal to lenders. It demonstrates good cash flow management.",
    ),
)


def _question_ceiling(question: QuizQuestion) -> int:
    points = [o.points for o in question.outcomes.values()]
    points.extend(o.points for o in question.refinement_tiers.values())
    if question.refinement_fallback is not None:
        points.append(question.refinement_fallback.points)
    return max(points)


def check_weight_ceiling(
    questions: tuple[QuizQuestion, ...], ceiling: int = MAX_SCORE_CEILING
) -> int:
    """Verify the maximum achievable points add up to ``ceiling``."""
    total = 0
    for question in questions:
        best = _question_ceiling(question)
        if best != question.score_impact.maximum:
            raise RegistryConfigurationError(
                f"Question {question.id} tier table tops out at {best} points "
                f"but its score impact allows {question.score_impact.maximum}"
            )
        total += best
    if total != ceiling:
        raise RegistryConfigurationError(
            f"Quiz weights sum to {total}, expected {ceiling}; rebalance the weights"
        )
    return total


MAX_SCORE = check_weight_ceiling(QUIZ_QUESTIONS)

_QUESTIONS_BY_ID = {q.id: q for q in QUIZ_QUESTIONS}


def _normalize_answer(answer) -> str | None:
    if not isinstance(answer, str):
        return None
    folded = answer.strip().casefold()
    if folded == "yes":
        return YES
    if folded == "no":
        return NO
    return None


class FundabilityScoringService(LoggerMixin):
    """Weighted eligibility scoring for the funding quiz."""

    @staticmethod
    def rating_for(percentage: int) -> Rating:
        if percentage >= 80:
            return Rating.EXCELLENT
        if percentage >= 60:
            return Rating.GOOD
        if percentage >= 40:
            return Rating.FAIR
        return Rating.NEEDS_IMPROVEMENT

    @staticmethod
    def outcome_for(question: QuizQuestion, answers: Mapping[str, str]) -> TierOutcome:
        """Resolve the tier outcome of one question.

        An unanswered (or unrecognised) question takes its unfavorable answer.
        """
        # TODO: confirm with product whether unanswered questions should be
        # dropped from max_score instead of scored as unfavorable.
        answer = _normalize_answer(answers.get(question.id))
        if answer is None:
            answer = question.unfavorable_answer

        if question.refined_answer == answer:
            refinement = question.follow_up.target_key if question.follow_up else None
            tier = question.refinement_tiers.get(answers.get(refinement, ""))
            return tier if tier is not None else question.refinement_fallback
        return question.outcomes[answer]

    @classmethod
    def score(cls, answers: Mapping[str, str]) -> FundabilityResult:
        total = 0
        factors: list[FundabilityFactor] = []
        for question in QUIZ_QUESTIONS:
            outcome = cls.outcome_for(question, answers)
            total += outcome.points
            factors.append(
                FundabilityFactor(
                    name=question.factor_name,
                    status=outcome.status,
                    description=outcome.description,
                )
            )

        percentage = math.floor(total / MAX_SCORE * 100 + 0.5)
        rating = cls.rating_for(percentage)

        log_fundability_score(score=total, rating=rating.value).info(
            "Fundability score calculated",
            max_score=MAX_SCORE,
            percentage=percentage,
            answered=sum(1 for q in QUIZ_QUESTIONS if _normalize_answer(answers.get(q.id))),
        )

        return FundabilityResult(
            score=total,
            max_score=MAX_SCORE,
            percentage=percentage,
            rating=rating,
            factors=factors,
        )

    @staticmethod
    def insight_for(question_id: str, answer: str) -> QuizInsight:
        """Feedback shown right after a yes/no answer."""
        question = _QUESTIONS_BY_ID[question_id]
        normalized = _normalize_answer(answer) or question.unfavorable_answer
        if normalized == YES:
            chosen, alternative = question.score_impact.yes, question.score_impact.no
            content = question.insight_yes
        else:
            chosen, alternative = question.score_impact.no, question.score_impact.yes
            content = question.insight_no
        is_positive = chosen >= alternative
        return QuizInsight(
            title="Great!" if is_positive else "Good to know",
            content=content,
            is_positive=is_positive,
        )
