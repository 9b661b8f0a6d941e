"""Validation of the quota admission configuration."""

from __future__ import annotations

from dataclasses import dataclass

from tenantpolicy.api import Configuration

REQUIRED_VALUE = "Required value"


@dataclass(frozen=True)
class FieldError:
    """A problem with one field of a configuration."""

    field: str
    error_type: str = REQUIRED_VALUE
    detail: str = ""

    def __str__(self) -> str:
        body = self.error_type
        if self.detail:
            body = f"{body}: {self.detail}"
        return f"{self.field}: {body}"


def validate_configuration(config: Configuration) -> list[FieldError]:
    """Return every field error found in the configuration."""
    return [
        FieldError(f"limitedResources[{index}].resource")
        for index, limited in enumerate(config.limited_resources)
        if not limited.resource
    ]