"""ACME challenge handlers."""

from domainproof.challenges.base import ValidationPlugin
from domainproof.challenges.http01 import SelfHosting

__all__ = ["SelfHosting", "ValidationPlugin"]
