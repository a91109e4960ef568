"""
Error types raised by kinetophone.

Every error is a synchronous input-validation failure raised at the call
site. Nothing is retried or recovered internally, and a failed operation
leaves the engine exactly as it was.
"""


class KinetophoneError(ValueError):
    """Base class for all kinetophone errors."""


class MissingTotalDuration(KinetophoneError):
    """Engine constructed without a total duration."""


class InvalidDuration(KinetophoneError):
    """Total duration reassigned to None."""


class DuplicateChannel(KinetophoneError):
    """A channel with the same name already exists."""

    def __init__(self, name: str):
        super().__init__(f"Duplicate channel name '{name}'")
        self.name = name


class UnknownChannel(KinetophoneError, KeyError):
    """Referenced channel does not exist."""

    def __init__(self, name: str):
        super().__init__(f"No such channel '{name}'")
        self.name = name

    def __str__(self):
        # KeyError would otherwise repr() the message
        return self.args[0]


class ConflictingBounds(KinetophoneError):
    """A timing declares both 'end' and 'duration'."""


class InvalidTiming(KinetophoneError):
    """A timing has no start, or normalizes to an empty interval."""


class ConfigError(KinetophoneError):
    """Configuration or cue sheet could not be loaded."""
