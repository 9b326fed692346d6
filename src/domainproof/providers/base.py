"""Abstract base class for DNS providers."""

from abc import abstractmethod
from collections.abc import Iterable

from domainproof._logging import challenge_context, get_challenge_extra, get_logger
from domainproof.challenges.base import ValidationPlugin
from domainproof.exceptions import ZoneNotFoundError
from domainproof.models import DnsChallenge, ManagedZone, ZoneCandidate

logger = get_logger(__name__)


def score_zone(zone: ManagedZone, record_name: str) -> int:
    """Score how specifically a zone owns a record name.

    If there is a zone for a.b.c.com (4) and one for c.com (2), the
    former is the better match for x.a.b.c.com.

    Args:
        zone: The candidate zone.
        record_name: The fully qualified record name.

    Returns:
        Number of labels in the zone name, or 0 if the zone does not
        contain the record.
    """
    name = zone.normalized_name
    record = record_name.rstrip(".").lower()
    if not name or not (record == name or record.endswith("." + name)):
        return 0
    return len(name.split("."))


def select_zone(zones: Iterable[ManagedZone], record_name: str) -> ManagedZone:
    """Pick the most specific zone owning a record name.

    Ties keep the order the provider listed the zones in.

    Args:
        zones: All zones visible to the provider credentials.
        record_name: The fully qualified record name.

    Returns:
        The best matching zone.

    Raises:
        ZoneNotFoundError: If no zone contains the record name.
    """
    best: ZoneCandidate | None = None
    for zone in zones:
        fit = score_zone(zone, record_name)
        if fit > 0:
            logger.debug("Zone scored", extra={"zone": zone.dns_name, "fit": fit})
            if best is None or fit > best.specificity:
                best = ZoneCandidate(zone=zone, specificity=fit)
        else:
            logger.debug("Zone not matched", extra={"zone": zone.dns_name})

    if best is None:
        raise ZoneNotFoundError(record_name)
    return best.zone


class DnsProvider(ValidationPlugin):
    """Abstract interface for DNS providers.

    DNS providers create and delete the TXT record used for DNS-01
    challenge validation. Preparing the challenge creates the record,
    cleaning up deletes it.

    Args:
        challenge: The record name and token to publish.
    """

    challenge_type = "dns-01"

    def __init__(self, challenge: DnsChallenge):
        self.challenge = challenge

    @abstractmethod
    async def create_record(self, record_name: str, token: str) -> None:
        """Create a TXT record and wait until the provider has published it.

        Args:
            record_name: Fully qualified record name.
            token: The TXT record value (unquoted).
        """
        ...

    @abstractmethod
    async def delete_record(self, record_name: str, token: str) -> None:
        """Delete a TXT record created by create_record().

        Args:
            record_name: Fully qualified record name.
            token: The TXT record value (unquoted).
        """
        ...

    async def prepare_challenge(self) -> None:
        with challenge_context(self.challenge_type, self.challenge.record_name):
            await self.create_record(self.challenge.record_name, self.challenge.token)

    async def cleanup(self) -> None:
        with challenge_context(self.challenge_type, self.challenge.record_name):
            try:
                await self.delete_record(self.challenge.record_name, self.challenge.token)
            except Exception as e:
                logger.warning(
                    "Unable to delete TXT record",
                    extra={"error": str(e), **get_challenge_extra()},
                )
