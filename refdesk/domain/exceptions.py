"""Root of the refdesk error taxonomy."""


class RefDeskError(Exception):
    """Base class for every error the relay raises on purpose.

    Validation, session-state and platform failures all derive from it,
    so ``refdesk.api.errors`` can turn any of them into a problem response.
    """

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
