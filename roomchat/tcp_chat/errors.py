"""Error taxonomy for the chat protocol. None of these are fatal to the server."""


class ChatError(Exception):
    """Base class; the message is what gets sent back to the client."""

    default_message = "Request failed"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ProtocolDecodeError(ChatError):
    default_message = "Invalid message format"


class FrameTooLargeError(ProtocolDecodeError):
    default_message = "Message too large"


# ----- authentication -----

class AuthError(ChatError):
    default_message = "Authentication failed"


class UsernameTaken(AuthError):
    default_message = "Username already exists"


class AlreadyOnline(AuthError):
    default_message = "User already logged in"


class InvalidCredentials(AuthError):
    default_message = "Invalid username or password"


class AlreadyAuthenticated(AuthError):
    default_message = "Already authenticated"


class CredentialStoreError(AuthError):
    default_message = "User database unavailable"


# ----- authorization -----

class AuthorizationError(ChatError):
    default_message = "Not allowed"


class NotAuthenticated(AuthorizationError):
    default_message = "You must log in first"


class NotRoomAdmin(AuthorizationError):
    default_message = "You are not the admin of any room."


# ----- lookups / files -----

class NotFoundError(ChatError):
    default_message = "Not found"


class InvalidFilenameError(ChatError):
    default_message = "Invalid filename"


class FileTooLargeError(ChatError):
    default_message = "File too large"
