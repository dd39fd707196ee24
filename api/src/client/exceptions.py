"""Progress sync client errors."""


class SyncError(Exception):
    """Base sync error."""

    def __init__(self, message: str, code: str = "sync_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class SyncTransportError(SyncError):
    """Network failure or server error; the request may be retried."""

    def __init__(
        self,
        message: str = "Progress sync failed",
        status_code: int | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, "sync_transport")


class SyncUnauthorizedError(SyncError):
    """Token missing, expired or rejected by the server."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, "unauthorized")


class SyncRejectedError(SyncError):
    """Server refused the request itself (4xx); retrying cannot help."""

    def __init__(self, message: str, status_code: int):
        self.status_code = status_code
        super().__init__(message, "sync_rejected")
