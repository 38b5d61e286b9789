from focus_tempo.detection.base import ExpressionDetector
from focus_tempo.detection.replay import ReplayDetector, load_frames, neutral_frame

__all__ = ["ExpressionDetector", "ReplayDetector", "load_frames", "neutral_frame"]
