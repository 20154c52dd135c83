"""Scenario scoring formula."""

from .engine import (
    SCORE_BANDS,
    PortfolioScorer,
    ScoreBand,
    ScoringConfig,
    composite_score,
    compute_drawdown_score,
    compute_return_score,
    score_band,
)


__all__ = [
    "SCORE_BANDS",
    "PortfolioScorer",
    "ScoreBand",
    "ScoringConfig",
    "composite_score",
    "compute_drawdown_score",
    "compute_return_score",
    "score_band",
]
