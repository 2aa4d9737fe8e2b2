from enum import Enum


class ConnectErrorKind(Enum):
    TRANSPORT = 'transport'
    PARSE = 'parse'
    IO = 'io'


class MessageErrorKind(Enum):
    SEND = 'send'
    TRANSPORT = 'transport'
    JSON = 'json'


class PHXClientError(Exception):
    pass


class PHXConnectionError(PHXClientError):
    """Raised when there's an error connecting to the Phoenix WebSocket server."""

    def __init__(self, message: str, kind: ConnectErrorKind = ConnectErrorKind.TRANSPORT):
        self.kind = kind
        super().__init__(message)


class PHXMessageError(PHXClientError):
    """Raised when a single frame cannot be encoded, decoded or transmitted."""

    def __init__(self, message: str, kind: MessageErrorKind):
        self.kind = kind
        super().__init__(message)

    @classmethod
    def from_message_error(cls, error: 'PHXMessageError') -> 'PHXMessageError':
        """Re-scope ``error`` to this class, keeping its message and kind."""
        if isinstance(error, cls):
            return error
        return cls(str(error), error.kind)


class PHXJoinError(PHXMessageError):
    """A :class:`PHXMessageError` raised while joining a channel."""
    pass


class PHXSenderUnavailableError(PHXClientError):
    """Raised when the sender worker is not running."""
    pass
