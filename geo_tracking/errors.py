# errors.py
"""Exception taxonomy. Every failure is local to one operation."""


class TrackingError(RuntimeError):
    """Base class for recoverable positioning / sampling failures."""


class SensorsNotReady(TrackingError):
    """Raised when a position fix or an orientation sample is missing."""

    def __init__(self, missing):
        self.missing = tuple(missing)
        super().__init__(
            "Waiting for sensor data: no "
            + " and no ".join(self.missing)
            + " available yet"
        )


class InvalidGeometry(TrackingError):
    """Raised when the range estimate would be infinite, NaN or negative."""


class MediaLoadError(TrackingError):
    """Raised when a media source cannot be opened or decoded."""


class FrameExtractionError(TrackingError):
    """Raised when a seek never resolves or a frame cannot be captured."""


class AnalysisError(TrackingError):
    """Raised when the external analysis collaborator fails."""
