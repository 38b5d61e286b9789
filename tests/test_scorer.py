"""Tests for the expression scorer."""

from __future__ import annotations

import math
import random

import pytest

from focus_tempo.exceptions import ConfigurationError
from focus_tempo.focus.scorer import ExpressionScorer, ScoringWeights
from focus_tempo.models import Emotion

_LABELS = [e.value for e in Emotion]


def _fuzzed_vector(rng: random.Random) -> dict:
    vector = {}
    for label in _LABELS:
        roll = rng.random()
        if roll < 0.15:
            continue  # missing field
        if roll < 0.25:
            vector[label] = rng.choice([math.nan, math.inf, -math.inf, None, "junk"])
        elif roll < 0.4:
            vector[label] = rng.uniform(-5.0, 5.0)
        else:
            vector[label] = rng.random()
    if rng.random() < 0.2:
        vector["contempt"] = rng.random()
    return vector


class TestNoDetection:
    def test_none_is_neutral_default(self):
        assert ExpressionScorer().score(None) == 0.5

    def test_empty_vector_is_neutral_default(self):
        assert ExpressionScorer().score({}) == 0.5

    def test_only_unknown_labels_is_neutral_default(self):
        assert ExpressionScorer().score({"contempt": 0.9}) == 0.5

    def test_only_unusable_values_is_neutral_default(self):
        vector = {"neutral": math.nan, "happy": None, "sad": "junk", "angry": math.inf}
        assert ExpressionScorer().score(vector) == 0.5

    def test_one_usable_label_is_scored(self):
        assert ExpressionScorer().score({"neutral": math.nan, "sad": 1.0}) == 0.0

    def test_custom_neutral_default(self):
        assert ExpressionScorer(neutral_default=0.4).score(None) == 0.4


class TestWeightedScore:
    def test_pure_neutral(self):
        assert ExpressionScorer().score({"neutral": 1.0}) == pytest.approx(0.6)

    def test_reference_mix(self):
        vector = {"neutral": 0.5, "happy": 0.2, "surprised": 0.1, "sad": 0.1, "angry": 0.1}
        # 0.30 + 0.06 + 0.01 - 0.02 - 0.02
        assert ExpressionScorer().score(vector) == pytest.approx(0.33)

    def test_distraction_only_saturates_at_zero(self):
        vector = {"angry": 1.0, "sad": 1.0, "fearful": 1.0, "disgusted": 1.0}
        assert ExpressionScorer().score(vector) == 0.0

    def test_unnormalised_vector_saturates_at_one(self):
        vector = {"neutral": 1.0, "happy": 1.0, "surprised": 1.0}
        assert ExpressionScorer().score(vector) == pytest.approx(1.0)
        vector["happy"] = 3.0  # clamped per label before weighting
        assert ExpressionScorer().score(vector) == pytest.approx(1.0)

    def test_enum_keys_accepted(self):
        assert ExpressionScorer().score({Emotion.NEUTRAL: 1.0}) == pytest.approx(0.6)

    def test_custom_weights(self):
        scorer = ExpressionScorer(ScoringWeights(neutral=0.8, happy=0.0))
        assert scorer.score({"neutral": 1.0, "happy": 1.0}) == pytest.approx(0.8)

    def test_nan_probability_ignored(self):
        assert ExpressionScorer().score({"neutral": 1.0, "sad": math.nan}) == pytest.approx(0.6)

    def test_callable(self):
        scorer = ExpressionScorer()
        assert scorer({"neutral": 1.0}) == scorer.score({"neutral": 1.0})


class TestScoreBounds:
    @pytest.mark.parametrize("seed", range(20))
    def test_fuzzed_vectors_stay_in_unit_range(self, seed):
        rng = random.Random(seed)
        scorer = ExpressionScorer()
        for _ in range(50):
            score = scorer.score(_fuzzed_vector(rng))
            assert 0.0 <= score <= 1.0
            assert not math.isnan(score)


class TestConfiguration:
    def test_negative_weight_rejected(self):
        with pytest.raises(ConfigurationError):
            ScoringWeights(sad=-0.2)

    def test_non_finite_weight_rejected(self):
        with pytest.raises(ConfigurationError):
            ScoringWeights(neutral=math.inf)

    @pytest.mark.parametrize("default", [-0.1, 1.5])
    def test_neutral_default_out_of_range(self, default):
        with pytest.raises(ConfigurationError):
            ExpressionScorer(neutral_default=default)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            ScoringWeights(happy=-1.0)
