"""Progress tracking errors."""


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidIntervalError(ProgressError):
    """Interval has start > end or cannot be placed inside the video."""

    def __init__(self, message: str = "Invalid watched interval"):
        super().__init__(message, "invalid_interval")


class VideoNotFoundError(ProgressError):
    """Video does not exist in the catalog."""

    def __init__(self, message: str = "Video not found"):
        super().__init__(message, "video_not_found")


class ProgressLockTimeoutError(ProgressError):
    """Could not acquire the per-key progress lock in time."""

    def __init__(self, message: str = "Progress is busy, retry the update"):
        super().__init__(message, "progress_busy")
