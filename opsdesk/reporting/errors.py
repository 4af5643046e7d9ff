"""Exceptions raised by the ad-hoc report engine."""


class ReportingError(Exception):
    """Base class for report engine errors."""


class DisallowedEntityError(ReportingError):
    """Raised when a report targets an entity that is not in the registry."""

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"Entity not allowed: {entity!r}")


class RegistryError(ReportingError):
    """Raised when a static entity declaration is inconsistent."""
