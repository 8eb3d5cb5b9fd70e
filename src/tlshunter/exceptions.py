"""Typed exception hierarchy for tlshunter."""


class TLSHunterError(Exception):
    """Base exception for all tlshunter errors."""

    pass


class ContainerError(TLSHunterError):
    """Raised when an APK or its manifest cannot be decoded."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot decode {path}: {reason}")


class ResourceResolutionError(TLSHunterError):
    """Raised when a resource entry is missing, oversized or unreadable."""

    pass


class ConfigParseError(TLSHunterError):
    """Raised when a network security config is missing or malformed."""

    pass
