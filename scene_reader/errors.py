"""Errors surfaced by the session controller.

Every error here is recoverable: the controller is back in the idle state by
the time one is recorded, and the user may simply retry.
"""


class SessionError(Exception):
    """Base class; ``str(error)`` is the message shown to the user."""


class NoTextToSpeak(SessionError):
    def __init__(self):
        super().__init__("No text to speak. Please select a sentence.")


class EngineInitializationFailed(SessionError):
    def __init__(self, reason: str = ""):
        self.reason = reason
        message = "Failed to initialize the text-to-speech engine."
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class EngineSpeakFailed(SessionError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Error during speech: {reason}")


class EngineStopFailed(SessionError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to stop speech: {reason}")


class InvalidSettings(SessionError, ValueError):
    """Raised to the caller when an update names an unknown field, scene or voice."""
