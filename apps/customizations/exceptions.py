"""
apps.customizations.exceptions
"""
from common.exceptions import ValidationError


class CustomizationValidationError(ValidationError):
    """Raised when a customization blob does not match the block shapes."""

    default_code = "invalid_customization"
    default_detail = "The customization contains invalid values."

    def __init__(self, errors: list[dict], detail: str | None = None) -> None:
        self.errors = errors
        super().__init__(detail)


class LogoValidationError(ValidationError):
    default_code = "invalid_logo"
    default_detail = "The uploaded logo is not acceptable."
