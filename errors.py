class SessionError(Exception):
    """Base for every failure the coordinator reports back to a client."""

    message = "Something went wrong."

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class RoomExists(SessionError):
    message = "Room already exists! Please join instead."


class RoomNotFound(SessionError):
    message = "Room does not exist!"


class WrongPassword(SessionError):
    message = "Incorrect Password!"


class UnsupportedLanguage(SessionError):
    message = "Error: Language not supported."


class NotHost(SessionError):
    message = "Only the host can end the room."


class ProviderError(SessionError):
    message = "Error executing code."
