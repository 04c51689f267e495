"""Multi-criteria decision matrix engine."""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError
from ..models.data_models import (
    Alternative,
    Criterion,
    DecisionMatrixInput,
    DecisionMatrixResult,
    LocationMetrics,
    MatrixTemplate,
    PropertyRecord,
    Recommendation,
    Scale,
    SensitivityResult,
)
from ..utils.config import Config
from ..utils.logging import get_logger
from .comparison import location_criterion_value
from .scoring import TOTAL, frame_to_scores, rank_frame, score_frame

WEIGHT_TOLERANCE = 0.01
CLEAR_MARGIN = 0.1
STRENGTH_THRESHOLD = 0.7
MAX_CONFIDENCE = 0.95

MAX_PROPERTY_PRICE = 1_000_000
REFERENCE_PROPERTY_SIZE = 200


def _criterion(weight: float, scale: str, description: str) -> Criterion:
    return Criterion(weight=weight, scale=Scale(scale), description=description)


MATRIX_TEMPLATES: Dict[str, List[MatrixTemplate]] = {
    "location": [
        MatrixTemplate(
            name="Basic Location Comparison",
            description="Compare locations based on fundamental factors",
            category="general",
            criteria={
                "cost": _criterion(0.25, "lower_better", "Cost of living"),
                "climate": _criterion(0.2, "higher_better", "Climate quality"),
                "culture": _criterion(0.15, "higher_better", "Cultural fit"),
                "safety": _criterion(0.2, "higher_better", "Safety rating"),
                "transport": _criterion(0.2, "higher_better", "Transportation quality"),
            },
        ),
        MatrixTemplate(
            name="Relocation Decision Matrix",
            description="Comprehensive analysis for relocation decisions",
            category="relocation",
            criteria={
                "cost": _criterion(0.3, "lower_better", "Affordability"),
                "career": _criterion(0.25, "higher_better", "Career opportunities"),
                "climate": _criterion(0.15, "higher_better", "Climate preference"),
                "culture": _criterion(0.1, "higher_better", "Cultural compatibility"),
                "safety": _criterion(0.1, "higher_better", "Safety level"),
                "healthcare": _criterion(0.1, "higher_better", "Healthcare quality"),
            },
        ),
        MatrixTemplate(
            name="Travel Destination Matrix",
            description="Choose the best travel destination",
            category="travel",
            criteria={
                "cost": _criterion(0.2, "lower_better", "Travel budget"),
                "activities": _criterion(0.25, "higher_better", "Activities available"),
                "climate": _criterion(0.2, "higher_better", "Weather conditions"),
                "culture": _criterion(0.15, "higher_better", "Cultural interest"),
                "accessibility": _criterion(0.2, "higher_better", "Ease of access"),
            },
        ),
    ],
    "property": [
        MatrixTemplate(
            name="Property Investment Analysis",
            description="Analyze properties for investment potential",
            category="investment",
            criteria={
                "price": _criterion(0.3, "lower_better", "Purchase price"),
                "location": _criterion(0.25, "higher_better", "Location quality"),
                "condition": _criterion(0.15, "higher_better", "Property condition"),
                "potential": _criterion(0.2, "higher_better", "Growth potential"),
                "yield": _criterion(0.1, "higher_better", "Rental yield"),
            },
        ),
        MatrixTemplate(
            name="Family Home Selection",
            description="Find the perfect family home",
            category="family",
            criteria={
                "size": _criterion(0.25, "higher_better", "Living space"),
                "location": _criterion(0.2, "higher_better", "Neighborhood quality"),
                "schools": _criterion(0.2, "higher_better", "School quality"),
                "price": _criterion(0.2, "lower_better", "Affordability"),
                "amenities": _criterion(0.15, "higher_better", "Local amenities"),
            },
        ),
    ],
}


def property_criterion_value(record: PropertyRecord, criterion: str) -> float:
    """Map a property field onto a comparable value for the matrix."""
    if criterion == "price":
        return max(0.0, min(1.0, (MAX_PROPERTY_PRICE - record.price) / MAX_PROPERTY_PRICE))
    if criterion == "size":
        size = record.size if record.size is not None else 100
        return max(0.0, min(1.0, size / REFERENCE_PROPERTY_SIZE))
    if criterion == "condition":
        return record.condition if record.condition is not None else 0.5
    if criterion == "location":
        return record.location_score if record.location_score is not None else 0.5
    if criterion == "potential":
        return record.growth_potential if record.growth_potential is not None else 0.5
    if criterion == "yield":
        return record.rental_yield if record.rental_yield is not None else 0.05
    return 0.5


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


class DecisionMatrixEngine:
    """Validate, score, rank and stress-test weighted decision matrices."""

    def __init__(self, config: Optional[Config] = None, sensitivity_delta: Optional[float] = None):
        self.config = config or Config()
        self.sensitivity_delta = (
            sensitivity_delta if sensitivity_delta is not None else self.config.sensitivity_delta
        )
        self.logger = get_logger("decision_matrix")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create(self, matrix: Union[DecisionMatrixInput, Mapping[str, Any]]) -> DecisionMatrixResult:
        """Evaluate a decision matrix.

        Args:
            matrix: Matrix input model or its dictionary form

        Returns:
            Scores, rankings, sensitivity and recommendation

        Raises:
            ValidationError: If the input breaks a matrix rule
        """
        matrix = self._coerce(matrix)
        self.validate(matrix)

        frame = self.calculate_scores(matrix.criteria, matrix.alternatives)
        scores = frame_to_scores(frame)
        rankings = rank_frame(frame)
        sensitivity = self.perform_sensitivity_analysis(matrix, rankings["1"])
        recommendation = self.generate_recommendation(matrix, scores, rankings, sensitivity)

        result = DecisionMatrixResult(
            id=str(uuid.uuid4()),
            user_id=matrix.user_id,
            name=matrix.name,
            description=matrix.description,
            matrix_type=matrix.matrix_type,
            criteria=matrix.criteria,
            alternatives=matrix.alternatives,
            scores=scores,
            rankings=rankings,
            sensitivity=sensitivity,
            recommendation=recommendation,
            summary=". ".join(recommendation.reasoning),
        )

        self.logger.info(
            f"Decision matrix '{matrix.name}' evaluated: {len(matrix.alternatives)} alternatives, "
            f"winner {rankings['1']} (confidence {recommendation.confidence:.2f})"
        )
        return result

    def update(self, existing: DecisionMatrixResult, **changes: Any) -> DecisionMatrixResult:
        """Merge changes into an evaluated matrix and recompute everything.

        Only name, description, matrix_type, criteria and alternatives may
        change; the matrix keeps its id.
        """
        allowed = {"name", "description", "matrix_type", "criteria", "alternatives"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError(
                f"Cannot update fields: {', '.join(sorted(unknown))}",
                suggestions=[f"Updatable fields are {', '.join(sorted(allowed))}"],
            )

        merged = {
            "user_id": existing.user_id,
            "name": existing.name,
            "description": existing.description,
            "matrix_type": existing.matrix_type,
            "criteria": existing.criteria,
            "alternatives": existing.alternatives,
        }
        merged.update({key: value for key, value in changes.items() if value is not None})

        result = self.create(merged)
        return result.model_copy(update={"id": existing.id, "created_at": existing.created_at})

    def validate(self, matrix: DecisionMatrixInput) -> None:
        """Check matrix rules in order and raise on the first failure."""
        if not matrix.name or not matrix.name.strip():
            raise ValidationError("Decision matrix name is required")

        if not matrix.criteria:
            raise ValidationError("At least one criterion is required")

        if len(matrix.alternatives) < 2:
            raise ValidationError(
                "At least two alternatives are required",
                context={"alternatives": len(matrix.alternatives)},
            )

        total_weight = sum(c.weight for c in matrix.criteria.values())
        if abs(total_weight - 1) > WEIGHT_TOLERANCE:
            raise ValidationError(
                "Criteria weights must sum to 1.0",
                context={"total_weight": round(total_weight, 6)},
                suggestions=["Rescale the weights so they add up to 1.0"],
            )

        for alt_id, alternative in matrix.alternatives.items():
            for criterion in matrix.criteria:
                if criterion not in alternative.data:
                    raise ValidationError(
                        f"Alternative {alt_id} missing data for criterion {criterion}",
                        context={"alternative": alt_id, "criterion": criterion},
                    )

    def calculate_scores(
        self,
        criteria: Mapping[str, Criterion],
        alternatives: Mapping[str, Alternative],
        weights: Optional[Mapping[str, float]] = None,
    ) -> pd.DataFrame:
        """Build the weighted score table.

        Args:
            criteria: Criterion definitions
            alternatives: Alternatives keyed by id
            weights: Optional weight overrides (used for sensitivity runs)

        Returns:
            Score table with a ``total`` column
        """
        weights = weights or {key: c.weight for key, c in criteria.items()}
        scales = {key: c.scale for key, c in criteria.items()}
        data = {alt_id: alt.data for alt_id, alt in alternatives.items()}
        return score_frame(data, weights, scales)

    def perform_sensitivity_analysis(
        self, matrix: DecisionMatrixInput, winner: str
    ) -> Dict[str, SensitivityResult]:
        """Shift each criterion's weight up by the delta and see if the winner changes.

        The delta is taken evenly from the other criteria so weights still
        sum to one. A single criterion has nothing to trade against, so the
        analysis is skipped.
        """
        criteria = list(matrix.criteria.keys())
        if len(criteria) < 2:
            self.logger.info(f"Sensitivity analysis skipped for '{matrix.name}': single criterion")
            return {}

        delta = self.sensitivity_delta
        base_weights = {key: c.weight for key, c in matrix.criteria.items()}
        share = delta / (len(criteria) - 1)

        sensitivity: Dict[str, SensitivityResult] = {}
        for criterion in criteria:
            adjusted = {
                key: weight + delta if key == criterion else weight - share
                for key, weight in base_weights.items()
            }
            frame = self.calculate_scores(matrix.criteria, matrix.alternatives, weights=adjusted)
            new_winner = rank_frame(frame)["1"]
            changed = new_winner != winner

            sensitivity[criterion] = SensitivityResult(
                criterion=criterion,
                weight_change=delta,
                ranking_change=changed,
                new_winner=new_winner if changed else None,
            )

        return sensitivity

    def generate_recommendation(
        self,
        matrix: DecisionMatrixInput,
        scores: Dict[str, Dict[str, float]],
        rankings: Dict[str, str],
        sensitivity: Dict[str, SensitivityResult],
    ) -> Recommendation:
        """Summarize the outcome as a recommendation."""
        winner = rankings["1"]
        runner_up = rankings["2"]
        winner_total = scores[winner][TOTAL]
        difference = winner_total - scores[runner_up][TOTAL]

        confidence = max(0.0, min(MAX_CONFIDENCE, 0.5 + difference * 2))

        winner_name = matrix.alternatives[winner].name
        reasoning = [f"{winner_name} is the recommended choice with a score of {winner_total:.3f}"]
        if difference > CLEAR_MARGIN:
            reasoning.append(f"Clear winner with {difference * 100:.1f}% higher score than runner-up")
        else:
            reasoning.append("Close decision - consider personal preferences and other factors")

        strengths = [
            criterion
            for criterion, value in scores[winner].items()
            if criterion != TOTAL and value > STRENGTH_THRESHOLD
        ]
        if strengths:
            reasoning.append(f"Strong performance in: {', '.join(strengths)}")

        considerations = []
        sensitive = [s.criterion for s in sensitivity.values() if s.ranking_change]
        if sensitive:
            considerations.append(f"Decision sensitive to weight changes in: {', '.join(sensitive)}")

        alternatives = []
        if difference < CLEAR_MARGIN:
            alternatives.append(f"{matrix.alternatives[runner_up].name} is a very close second option")

        return Recommendation(
            winner=winner,
            confidence=confidence,
            reasoning=reasoning,
            alternatives=alternatives,
            considerations=considerations,
        )

    # ------------------------------------------------------------------
    # Templates and builders
    # ------------------------------------------------------------------

    def get_matrix_templates(self, matrix_type: str) -> List[MatrixTemplate]:
        """Predefined criteria sets for ``location`` or ``property`` matrices."""
        return [t.model_copy(deep=True) for t in MATRIX_TEMPLATES.get(matrix_type, [])]

    def create_location_matrix(
        self,
        user_id: Optional[str],
        locations: List[LocationMetrics],
        criteria: Mapping[str, Union[Criterion, Mapping[str, Any]]],
        name: Optional[str] = None,
    ) -> DecisionMatrixResult:
        """Build and evaluate a matrix whose alternatives are locations."""
        alternatives = {
            metrics.location_id: {
                "name": metrics.name or metrics.location_id,
                "data": {c: location_criterion_value(metrics, c) for c in criteria},
            }
            for metrics in locations
        }
        return self.create({
            "user_id": user_id,
            "name": name or f"Location Comparison - {_today()}",
            "description": f"Comparison of {len(locations)} locations",
            "matrix_type": "location",
            "criteria": self._oriented(criteria),
            "alternatives": alternatives,
        })

    def create_property_matrix(
        self,
        user_id: Optional[str],
        properties: List[PropertyRecord],
        criteria: Mapping[str, Union[Criterion, Mapping[str, Any]]],
        name: Optional[str] = None,
    ) -> DecisionMatrixResult:
        """Build and evaluate a matrix whose alternatives are properties."""
        alternatives = {
            record.property_id: {
                "name": record.title,
                "data": {c: property_criterion_value(record, c) for c in criteria},
            }
            for record in properties
        }
        return self.create({
            "user_id": user_id,
            "name": name or f"Property Comparison - {_today()}",
            "description": f"Comparison of {len(properties)} properties",
            "matrix_type": "property",
            "criteria": self._oriented(criteria),
            "alternatives": alternatives,
        })

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _oriented(
        self, criteria: Mapping[str, Union[Criterion, Mapping[str, Any]]]
    ) -> Dict[str, Any]:
        # Builder values are already mapped so that higher is better
        oriented = {}
        for key, criterion in criteria.items():
            if isinstance(criterion, Criterion):
                oriented[key] = criterion.model_copy(update={"scale": Scale.HIGHER_BETTER})
            else:
                oriented[key] = {**criterion, "scale": Scale.HIGHER_BETTER.value}
        return oriented

    def _coerce(self, matrix: Union[DecisionMatrixInput, Mapping[str, Any]]) -> DecisionMatrixInput:
        if isinstance(matrix, DecisionMatrixInput):
            return matrix
        try:
            return DecisionMatrixInput.model_validate(matrix)
        except PydanticValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise ValidationError(
                f"Invalid decision matrix at {location}: {first['msg']}",
                context={"field": location},
            ) from e
