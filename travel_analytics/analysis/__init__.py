"""Analysis modules."""

from .biases import BiasDetector
from .comparison import ComparisonScorer
from .decision_matrix import DecisionMatrixEngine
from .patterns import InMemoryPatternRepository, PatternAnalyzer, PatternRepository
from .recommendation_engine import BehaviorAdvisor

__all__ = [
    "BiasDetector",
    "ComparisonScorer",
    "DecisionMatrixEngine",
    "InMemoryPatternRepository",
    "PatternAnalyzer",
    "PatternRepository",
    "BehaviorAdvisor",
]
