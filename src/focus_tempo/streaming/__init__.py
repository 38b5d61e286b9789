from focus_tempo.streaming.runner import SessionRunner

__all__ = ["SessionRunner"]
