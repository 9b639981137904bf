"""Resolution of identifiers that may be either our UUID or a Stripe id."""

from uuid import UUID

from packages.billing.models.domain.enums import IdentifierKind


def classify_identifier(value: str) -> IdentifierKind:
    """Internal ids are UUIDs; anything else is treated as a Stripe id."""
    try:
        UUID(value)
    except (ValueError, TypeError, AttributeError):
        return IdentifierKind.REMOTE
    return IdentifierKind.INTERNAL
