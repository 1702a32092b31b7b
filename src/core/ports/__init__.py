# Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.email import (
    EmailAddress,
    EmailNotConfiguredError,
    EmailProviderPort,
    ProviderError,
)
from src.core.ports.time import TimePort

__all__ = [
    # Email
    "EmailAddress",
    "EmailNotConfiguredError",
    "EmailProviderPort",
    "ProviderError",
    # Time
    "TimePort",
]
