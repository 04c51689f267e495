"""Recommendations, insights and predictions derived from behavior profiles."""

from typing import Any, Dict, List, Optional

from ..models.data_models import (
    BehaviorInsights,
    BehaviorPattern,
    BehaviorPrediction,
    BehaviorProfile,
    BiasFinding,
    PatternType,
    Severity,
)
from ..utils.logging import get_logger

WELL_ESTABLISHED_CONFIDENCE = 0.8
BIAS_AWARENESS_CONFIDENCE = 0.7
HIGH_RELIABILITY = 0.8
LOW_RELIABILITY = 0.5


class BehaviorAdvisor:
    """Turn a behavior profile into advice."""

    def __init__(self):
        self.logger = get_logger("recommendation_engine")

    def behavior_recommendations(
        self, profile: BehaviorProfile, patterns: List[BehaviorPattern]
    ) -> List[str]:
        """Template recommendations keyed off pattern type and confidence.

        Args:
            profile: Grouped profile of accepted patterns
            patterns: The accepted patterns themselves

        Returns:
            Recommendation sentences
        """
        recommendations = []

        for pattern in patterns:
            if (
                pattern.pattern_type == PatternType.PREFERENCE
                and pattern.confidence > WELL_ESTABLISHED_CONFIDENCE
            ):
                recommendations.append(
                    f"Your {pattern.category} preferences are well-established "
                    f"- use them to guide decisions"
                )

            if pattern.pattern_type == PatternType.BIAS and pattern.confidence > BIAS_AWARENESS_CONFIDENCE:
                recommendations.append(
                    f"Be aware of {pattern.category} bias in your decision-making process"
                )

        if profile.overall_reliability > HIGH_RELIABILITY:
            recommendations.append("Your behavior patterns are consistent - trust your instincts")
        elif profile.overall_reliability < LOW_RELIABILITY:
            recommendations.append(
                "Consider using structured decision-making tools to improve consistency"
            )

        return recommendations

    def insights(self, profile: BehaviorProfile, biases: List[BiasFinding]) -> BehaviorInsights:
        """Summarize strengths, weaknesses and risks of a profile.

        Args:
            profile: Behavior profile
            biases: Findings from the bias detector

        Returns:
            Behavior insights
        """
        insights = BehaviorInsights()

        climate = profile.preference_patterns.get("climate")
        if climate and climate.get("consistency", 0) > 0.7:
            insights.strengths.append(
                "Consistent climate preferences help narrow down suitable destinations"
            )

        activity = profile.preference_patterns.get("activity")
        if activity and activity.get("diversity", 1) < 0.5:
            insights.strengths.append(
                "Diverse activity interests provide flexibility in destination choices"
            )

        speed = profile.decision_patterns.get("speed", {}).get("speed")
        if speed == "fast":
            insights.weaknesses.append(
                "Tendency toward impulsive decisions without thorough analysis"
            )
            insights.recommendations.append(
                "Consider using decision matrices for important choices"
            )
        elif speed == "slow":
            insights.weaknesses.append(
                "Tendency to over-analyze, potentially missing opportunities"
            )
            insights.recommendations.append(
                "Set decision deadlines to avoid analysis paralysis"
            )

        style = profile.exploration_patterns.get("style")
        if style and style.get("style_profile", {}).get("comfortable", 0) > 0.5:
            insights.weaknesses.append(
                "Strong preference for comfort zone may limit growth"
            )
            insights.recommendations.append(
                "Gradually introduce new experiences to expand comfort zone"
            )

        for bias in biases:
            if bias.severity == Severity.HIGH:
                insights.risk_factors.append(f"High {bias.bias_type.value} bias detected")
                insights.recommendations.extend(bias.recommendations)

        return insights

    def predict(
        self,
        profile: BehaviorProfile,
        scenario: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> BehaviorPrediction:
        """Predict a choice for a scenario from the user's patterns.

        Only ``destination_selection`` is modelled; other scenarios return
        the neutral prediction.
        """
        prediction = BehaviorPrediction(scenario=scenario)

        if scenario != "destination_selection":
            self.logger.debug(f"No prediction model for scenario {scenario}")
            return prediction

        climate = profile.preference_patterns.get("climate", {})
        if climate.get("preference") == "warm":
            prediction.predicted_choice = "warm_destination"
            prediction.confidence = 0.8
            prediction.reasoning.append("Strong preference for warm climates detected")
        elif climate.get("preference") == "cool":
            prediction.predicted_choice = "cool_destination"
            prediction.confidence = 0.8
            prediction.reasoning.append("Strong preference for cool climates detected")

        cost = profile.preference_patterns.get("cost", {})
        budget = (context or {}).get("budget")
        if cost.get("sensitivity") == "high" or budget == "low":
            prediction.reasoning.append("High cost sensitivity may influence choice")
            prediction.alternatives.append("budget_friendly_alternatives")

        return prediction
