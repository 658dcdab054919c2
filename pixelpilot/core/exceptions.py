"""Exception taxonomy for Pixel Pilot.

Every error here is local and recoverable: callers surface it to the user
and keep going.
"""

from collections.abc import Mapping


class PixelPilotError(Exception):
    """Base exception for Pixel Pilot errors."""

    pass


class ValidationError(PixelPilotError):
    """Malformed user input, reported per field.

    Attributes:
        errors: Mapping of field name to human readable message.
    """

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        summary = "; ".join(f"{name}: {message}" for name, message in self.errors.items())
        super().__init__(summary or "Validation failed")

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        """Build an error for one field."""
        return cls({field: message})


class CooldownError(PixelPilotError):
    """Operation attempted before its cooldown elapsed."""

    def __init__(self, remaining_seconds: int) -> None:
        self.remaining_seconds = remaining_seconds
        super().__init__(f"Try again in {remaining_seconds}s")


class InvalidOtpError(PixelPilotError):
    """The submitted OTP is incorrect."""

    def __init__(self, message: str = "The OTP you entered is incorrect.") -> None:
        super().__init__(message)


class InvalidStateError(PixelPilotError):
    """Operation is not allowed in the current authentication state."""

    pass


class NotFoundError(PixelPilotError):
    """Operation referenced an unknown chatroom."""

    def __init__(self, chatroom_id: str) -> None:
        self.chatroom_id = chatroom_id
        super().__init__(f"Chatroom not found: {chatroom_id}")


class DirectoryLoadError(PixelPilotError):
    """Country reference data could not be fetched."""

    pass


class DeliveryError(PixelPilotError):
    """A simulated reply could not be delivered.

    Nothing raises this today; the simulated exchange cannot fail. It is the
    hook for a delivery path with retry and backoff.
    """

    pass
