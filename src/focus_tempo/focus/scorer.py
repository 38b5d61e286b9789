"""Expression scorer — emotion probabilities → raw focus score.

The score is a weighted linear combination of the expression
probabilities: ``neutral`` is the dominant focus signal, ``happy`` and
``surprised`` are mild contributors, and ``angry`` / ``sad`` /
``fearful`` / ``disgusted`` are subtracted as distraction signals.  The
weights are tuning policy, not a fixed contract, so they are always passed
in through :class:`ScoringWeights`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields

from focus_tempo.exceptions import ConfigurationError
from focus_tempo.models import Emotion, ExpressionVector

NEUTRAL_DEFAULT = 0.5


def clamp_unit(value: float) -> float:
    """Clamp to [0, 1]; saturating, never wrapping."""
    return max(0.0, min(1.0, value))


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    """Per-emotion weights.  All values are magnitudes (>= 0)."""

    neutral: float = 0.6
    happy: float = 0.3
    surprised: float = 0.1
    angry: float = 0.2
    sad: float = 0.2
    fearful: float = 0.2
    disgusted: float = 0.2

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not math.isfinite(value) or value < 0:
                raise ConfigurationError(f"weight {f.name!r} must be a finite value >= 0, got {value!r}")

    @property
    def focus(self) -> dict[Emotion, float]:
        return {
            Emotion.NEUTRAL: self.neutral,
            Emotion.HAPPY: self.happy,
            Emotion.SURPRISED: self.surprised,
        }

    @property
    def distraction(self) -> dict[Emotion, float]:
        return {
            Emotion.ANGRY: self.angry,
            Emotion.SAD: self.sad,
            Emotion.FEARFUL: self.fearful,
            Emotion.DISGUSTED: self.disgusted,
        }


def _probability(vector: ExpressionVector, emotion: Emotion) -> float | None:
    """Read one probability; ``None`` when the label is missing or unusable."""
    value = vector.get(emotion.value)
    if value is None:
        return None
    try:
        p = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(p):
        return None
    return clamp_unit(p)


class ExpressionScorer:
    """Stateless mapping from an :data:`ExpressionVector` to a focus score.

    ``None`` (no face detected), an empty mapping, and a frame in which no
    known label carries a finite value all score as the neutral default
    instead of zero.
    """

    def __init__(
        self,
        weights: ScoringWeights | None = None,
        neutral_default: float = NEUTRAL_DEFAULT,
    ) -> None:
        if not 0.0 <= neutral_default <= 1.0:
            raise ConfigurationError(f"neutral_default must be in [0, 1], got {neutral_default!r}")
        self.weights = weights or ScoringWeights()
        self.neutral_default = neutral_default

    def score(self, vector: ExpressionVector | None) -> float:
        if not vector:
            return self.neutral_default

        probabilities = {}
        for emotion in Emotion:
            p = _probability(vector, emotion)
            if p is not None:
                probabilities[emotion] = p
        if not probabilities:
            # nothing usable in the frame: same as no face
            return self.neutral_default

        focus = sum(w * probabilities.get(e, 0.0) for e, w in self.weights.focus.items())
        distraction = sum(w * probabilities.get(e, 0.0) for e, w in self.weights.distraction.items())
        return clamp_unit(focus - distraction)

    __call__ = score
