from focus_tempo.storage.repository import SessionStore, SqlSessionStore

__all__ = ["SessionStore", "SqlSessionStore"]
