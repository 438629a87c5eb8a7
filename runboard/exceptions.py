"""Domain errors raised by Runboard services and translated by the routers."""


class RunboardError(Exception):
    """Base class for expected, user-facing failures."""


class StravaAuthError(RunboardError):
    """Strava account not linked, or the stored token is expired or rejected."""


class StravaRateLimitError(RunboardError):
    """Strava request quota exhausted (local budget or HTTP 429)."""


class StravaAPIError(RunboardError):
    """Strava answered with an unexpected HTTP error or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InsufficientDataError(RunboardError):
    """Not enough activity history to run an analysis."""


class CoachConfigurationError(RunboardError):
    """The coach cannot run because a server-side setting is missing."""


class CoachResponseError(RunboardError):
    """The language model answered with something that is not usable JSON."""
