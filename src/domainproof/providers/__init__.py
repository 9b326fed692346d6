"""DNS providers for ACME challenge validation."""

from domainproof.providers.base import DnsProvider, score_zone, select_zone
from domainproof.providers.route53 import Route53Provider

__all__ = ["DnsProvider", "Route53Provider", "score_zone", "select_zone"]
