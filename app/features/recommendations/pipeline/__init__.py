"""
Pipeline components for recommendations.

Candidate generation, reranking and enrichment, composed by the
orchestrator. The cache is shared by all stages.
"""

from .cache import TTLCache
from .candidates import CandidateGenerator
from .enricher import Enricher
from .orchestrator import RecommendationOrchestrator
from .reranker import Reranker

__all__ = [
    "CandidateGenerator",
    "Enricher",
    "RecommendationOrchestrator",
    "Reranker",
    "TTLCache",
]
