"""Exception hierarchy.

Only :class:`ConfigurationError` is ever raised out of component
constructors.  Collaborator errors are raised by the music and storage
adapters and caught by :class:`~focus_tempo.streaming.runner.SessionRunner`;
the per-tick path itself never raises.
"""


class FocusTempoError(Exception):
    """Base class for all package errors."""


class ConfigurationError(FocusTempoError, ValueError):
    """Raised at construction time for invalid tuning parameters."""


class CollaboratorError(FocusTempoError):
    """An external collaborator failed; recoverable."""


class RecommendationError(CollaboratorError):
    """The music recommendation service could not return tracks."""


class PersistenceError(CollaboratorError):
    """A session or focus point could not be stored or loaded."""
