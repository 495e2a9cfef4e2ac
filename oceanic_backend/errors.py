class ParseError(ValueError):
    """Malformed time-of-day or numeric input. Raised before the engine sees it."""


class DataUnavailable(RuntimeError):
    """A candidate fetch failed or ran past its deadline."""

    def __init__(self, source: str, reason: str = ""):
        self.source = source
        self.reason = reason
        super().__init__(f"{source} candidates unavailable: {reason}" if reason else f"{source} candidates unavailable")


class DuplicateCallsign(ValueError):
    """A live request already uses this callsign."""

    def __init__(self, callsign: str):
        self.callsign = callsign
        super().__init__(f"{callsign} already has a live request")


class ConfigurationError(RuntimeError):
    """Missing or invalid window bounds / feature flags. Fatal at startup."""
