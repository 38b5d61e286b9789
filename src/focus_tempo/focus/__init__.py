"""Focus estimation core — from expression probabilities to music decisions.

Architecture
------------
1. **Scoring** (`scorer.py`)
   - Weighted linear combination of expression probabilities
   - Neutral default when no face is detected
2. **Smoothing** (`smoother.py`)
   - EWMA over the raw score, seeded with the first sample
3. **Tempo classification** (`tempo.py`)
   - Hysteresis bands with separate enter / exit thresholds
   - Count-based debounce before a category change is committed
4. **Aggregation** (`aggregator.py`)
   - Retention-window history for charts
   - Full-session statistics for persistence
5. **Control** (`controller.py`)
   - Per-tick orchestration and reselection decisions

Everything here is synchronous and free of I/O; the asyncio loop lives in
:mod:`focus_tempo.streaming`.
"""

from focus_tempo.focus.aggregator import SessionAggregator
from focus_tempo.focus.controller import FocusSessionController, TickDecision
from focus_tempo.focus.scorer import ExpressionScorer, ScoringWeights
from focus_tempo.focus.smoother import FocusSmoother
from focus_tempo.focus.tempo import TempoClassifier, TempoReading, TempoThresholds

__all__ = [
    "ExpressionScorer",
    "FocusSessionController",
    "FocusSmoother",
    "ScoringWeights",
    "SessionAggregator",
    "TempoClassifier",
    "TempoReading",
    "TempoThresholds",
    "TickDecision",
]
