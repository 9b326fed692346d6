"""Select a validation plugin from its options.

Usage::

    from domainproof.registry import create_plugin

    plugin = create_plugin(challenge, Route53Options(iam_role=role_arn))
    async with plugin:
        ...
"""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from domainproof.challenges.base import ValidationPlugin
from domainproof.challenges.http01 import SelfHosting
from domainproof.exceptions import ConfigurationError
from domainproof.models import DnsChallenge, HttpChallenge, Route53Options, SelfHostingOptions
from domainproof.providers.route53 import Route53Provider

# Maps options type -> (challenge type the plugin serves, factory)
_PLUGINS: dict[type[BaseModel], tuple[type[BaseModel], Callable[..., ValidationPlugin]]] = {
    SelfHostingOptions: (HttpChallenge, SelfHosting),
    Route53Options: (DnsChallenge, Route53Provider),
}


def create_plugin(
    challenge: HttpChallenge | DnsChallenge,
    options: SelfHostingOptions | Route53Options,
    **collaborators: Any,
) -> ValidationPlugin:
    """Create the validation plugin configured by ``options``.

    Args:
        challenge: The challenge the plugin will make observable.
        options: Plugin options; their type selects the plugin.
        **collaborators: Extra constructor arguments, e.g. ``user_role``
            for SelfHosting or ``client`` for Route53Provider.

    Returns:
        The plugin, not yet prepared.

    Raises:
        ConfigurationError: If the options are unknown or do not fit the challenge.
    """
    entry = _PLUGINS.get(type(options))
    if entry is None:
        raise ConfigurationError(f"No validation plugin for options {type(options).__name__}")

    challenge_type, factory = entry
    if not isinstance(challenge, challenge_type):
        raise ConfigurationError(
            f"{type(options).__name__} requires {challenge_type.__name__}, "
            f"got {type(challenge).__name__}"
        )
    return factory(challenge, options, **collaborators)
