"""Matching — mirroring, baseline scoring, topology classification and routing."""

from dealflow.matching.barter import BarterMatch, BarterMatcher
from dealflow.matching.classifier import (
    CycleCheck,
    CycleDetector,
    CycleStatus,
    MatchingModelClassifier,
)
from dealflow.matching.mirroring import MirrorReport, MirrorResult, SemanticMirror
from dealflow.matching.router import MatchingRouter
from dealflow.matching.scoring import BaselineScore, BaselineScorer

__all__ = [
    "BarterMatch",
    "BarterMatcher",
    "BaselineScore",
    "BaselineScorer",
    "CycleCheck",
    "CycleDetector",
    "CycleStatus",
    "MatchingModelClassifier",
    "MatchingRouter",
    "MirrorReport",
    "MirrorResult",
    "SemanticMirror",
]
