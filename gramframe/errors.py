"""Exception types raised by GramFrame.

All errors derive from GramFrameError so callers (and the command surface)
can catch the whole family in one place.
"""


class GramFrameError(Exception):
    """Base class for every GramFrame error."""


class ConfigurationError(GramFrameError):
    """Invalid data range or missing image metadata.

    Fatal at initialization: no partial session is created.
    """


class InvalidInputError(GramFrameError):
    """A command received a value it cannot accept.

    The operation is rejected and the prior state is left unchanged.
    """


class GeometryDegenerateError(GramFrameError):
    """A calculation has no defined result (zero spacing, zero f0).

    Engine functions normally report None instead; only the strict
    ``*_or_raise`` helpers raise this.
    """


class StateInconsistencyError(GramFrameError):
    """An operation referenced a feature that no longer exists."""

    def __init__(self, feature_id: str, message: str = ""):
        self.feature_id = feature_id
        super().__init__(message or f"Feature {feature_id!r} no longer exists")
