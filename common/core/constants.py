from enum import Enum


class Environment(str, Enum):
    """Environment profiles."""

    LOCAL = "local"
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class EmailProvider(str, Enum):
    """Notification delivery backends."""

    SMTP = "smtp"
    LOG = "log"
