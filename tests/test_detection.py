"""Tests for detectors, synthetic frames and presentation helpers."""

from __future__ import annotations

import pytest

from focus_tempo.detection.replay import ReplayDetector, load_frames, neutral_frame
from focus_tempo.focus.display import focus_label, format_elapsed, to_percent
from focus_tempo.focus.scorer import ExpressionScorer


@pytest.mark.parametrize("focus", [0.0, 0.2, 0.4, 0.6, 0.75, 0.9])
def test_neutral_frame_scores_back(focus):
    assert ExpressionScorer().score(neutral_frame(focus)) == pytest.approx(focus)


@pytest.mark.asyncio
async def test_replay_detector_lifecycle():
    detector = ReplayDetector([{"neutral": 1.0}, None])
    assert not detector.ready
    await detector.init()
    assert detector.ready

    assert await detector.detect() == {"neutral": 1.0}
    assert await detector.detect() is None
    assert not detector.exhausted
    assert await detector.detect() is None
    assert detector.exhausted
    assert detector.calls == 3

    await detector.close()
    assert not detector.ready


def test_load_frames_skips_bad_lines(tmp_path):
    path = tmp_path / "frames.jsonl"
    path.write_text('{"sad": 0.4}\n\nnull\n{broken\n3\n', encoding="utf-8")
    assert load_frames(path) == [{"sad": 0.4}, None]


class TestDisplay:
    @pytest.mark.parametrize(("score", "percent"), [(0.0, 0), (0.456, 46), (1.0, 100), (1.3, 100), (-0.2, 0)])
    def test_to_percent(self, score, percent):
        assert to_percent(score) == percent

    @pytest.mark.parametrize(("score", "label"), [(0.9, "high"), (0.7, "high"), (0.55, "moderate"), (0.1, "low")])
    def test_focus_label(self, score, label):
        assert focus_label(score) == label

    def test_format_elapsed(self):
        assert format_elapsed(0) == "00:00:00"
        assert format_elapsed(3725.9) == "01:02:05"
        assert format_elapsed(-5) == "00:00:00"
