class SessionError(Exception):
    """Base class for interview session errors."""


class PermissionDeniedError(SessionError):
    """Camera or microphone access was refused."""

    def __init__(self, message: str = "Camera and microphone access is required", code: str = "not-allowed"):
        self.code = code
        super().__init__(message)


class SpeechUnsupportedError(SessionError):
    """The platform offers no engine for the requested capability."""


class InvalidTransitionError(SessionError):
    """An action was requested in a state that does not allow it."""

    def __init__(self, action: str, state: str):
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} while session is {state}")
