"""
Compliance Engine - Errors

Only malformed input and invalid state-machine requests are raised.
Policy violations (blocked sends, missing disclosures) are returned as
structured issues, never raised: "blocked" is an expected outcome.
"""


class ComplianceValidationError(ValueError):
    """Raised when required input is missing or malformed, before any check runs."""
    pass


class FlagStateError(Exception):
    """Raised when a flag transition is not defined."""
    pass


def require_non_blank(**fields) -> None:
    """Raise ComplianceValidationError naming every missing or blank field."""
    missing = [
        name for name, value in fields.items()
        if value is None or (isinstance(value, str) and not value.strip())
    ]
    if missing:
        raise ComplianceValidationError(f"Missing required field(s): {', '.join(missing)}")
