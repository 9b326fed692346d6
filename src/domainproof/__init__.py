"""Domainproof - ACME challenge fulfillment over self-hosted HTTP and Route 53 DNS."""

from domainproof.challenges.http01 import SelfHosting
from domainproof.providers.route53 import Route53Provider
from domainproof.registry import create_plugin

__all__ = ["Route53Provider", "SelfHosting", "create_plugin"]
__version__ = "0.1.0"
