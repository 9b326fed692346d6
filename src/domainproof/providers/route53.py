"""AWS Route 53 provider for ACME DNS-01 challenges."""

import asyncio
import functools
from collections.abc import Callable
from typing import Any

import boto3
from botocore.config import Config
from botocore.credentials import DeferredRefreshableCredentials
from botocore.session import get_session

from domainproof._logging import Stopwatch, get_challenge_extra, get_logger
from domainproof.exceptions import PropagationTimeoutError, ZoneNotFoundError
from domainproof.models import (
    ChangeAction,
    ChangeInfo,
    CredentialMode,
    DnsChallenge,
    ManagedZone,
    PropagationState,
    Route53Options,
)
from domainproof.providers.base import DnsProvider, select_zone

logger = get_logger(__name__)

ROLE_SESSION_NAME = "domainproof"


def assume_role_fetcher(sts: Any, role_arn: str) -> Callable[[], dict[str, str]]:
    """Build a callable that assumes ``role_arn`` and returns botocore credential metadata.

    Each call requests a fresh STS session, so it can back
    refreshable credentials.
    """

    def fetch() -> dict[str, str]:
        credentials = sts.assume_role(
            RoleArn=role_arn,
            RoleSessionName=ROLE_SESSION_NAME,
        )["Credentials"]
        logger.debug(
            "Assumed IAM role",
            extra={"role_arn": role_arn, "expires": credentials["Expiration"].isoformat()},
        )
        return {
            "access_key": credentials["AccessKeyId"],
            "secret_key": credentials["SecretAccessKey"],
            "token": credentials["SessionToken"],
            "expiry_time": credentials["Expiration"].isoformat(),
        }

    return fetch


def build_route53_client(options: Route53Options) -> Any:
    """Create a boto3 Route 53 client for the configured credential source.

    The client is built without network I/O. An assumed role is fetched
    on first use and renewed by botocore before it expires.

    Args:
        options: Provider options.

    Returns:
        A boto3 ``route53`` client.
    """
    proxies = {"http": options.proxy, "https": options.proxy} if options.proxy else None
    config = Config(region_name=options.region, proxies=proxies)

    mode = options.credential_mode
    if mode is CredentialMode.IAM_ROLE and options.iam_role is not None:
        sts = boto3.client("sts", config=config)
        botocore_session = get_session()
        # botocore exposes no public setter for session credentials
        botocore_session._credentials = DeferredRefreshableCredentials(
            refresh_using=assume_role_fetcher(sts, options.iam_role),
            method="sts-assume-role",
        )
        return boto3.Session(botocore_session=botocore_session).client("route53", config=config)
    if mode is CredentialMode.ACCESS_KEY and options.secret_access_key is not None:
        return boto3.client(
            "route53",
            aws_access_key_id=options.access_key_id,
            aws_secret_access_key=options.secret_access_key.get_secret_value(),
            config=config,
        )
    # Default credential chain (env vars, shared config, instance profile)
    return boto3.client("route53", config=config)


class Route53Provider(DnsProvider):
    """DNS provider for AWS Route 53.

    Requires credentials allowed to call route53:ListHostedZones,
    route53:ChangeResourceRecordSets and route53:GetChange. boto3 is
    synchronous, so every API call runs in the default executor. The
    client is built there too, on the first call.

    Args:
        challenge: The record name and token to publish.
        options: Provider options (credentials, TTL, polling).
        client: Pre-built boto3 Route 53 client; built from options if omitted.
    """

    def __init__(
        self,
        challenge: DnsChallenge,
        options: Route53Options | None = None,
        client: Any = None,
    ):
        super().__init__(challenge)
        self.options = options or Route53Options()
        self._client = client
        self._client_lock = asyncio.Lock()

    async def _get_client(self) -> Any:
        async with self._client_lock:
            if self._client is None:
                loop = asyncio.get_running_loop()
                self._client = await loop.run_in_executor(
                    None, build_route53_client, self.options
                )
        return self._client

    async def _call(self, method: str, **kwargs: Any) -> dict[str, Any]:
        client = await self._get_client()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(getattr(client, method), **kwargs))

    async def list_zones(self) -> list[ManagedZone]:
        """List every hosted zone, following pagination markers.

        Returns:
            All zones visible to the credentials.
        """
        response = await self._call("list_hosted_zones")
        zones = [ManagedZone.model_validate(zone) for zone in response.get("HostedZones", [])]
        while response.get("IsTruncated"):
            response = await self._call("list_hosted_zones", Marker=response["NextMarker"])
            zones.extend(ManagedZone.model_validate(zone) for zone in response.get("HostedZones", []))

        logger.debug("Found hosted zones", extra={"count": len(zones)})
        return zones

    async def get_hosted_zone_id(self, record_name: str) -> str | None:
        """Find the id of the most specific zone owning a record name.

        Zones are listed again on every call.

        Args:
            record_name: Fully qualified record name.

        Returns:
            The zone id, or None (after logging an error) if no zone matches.
        """
        zones = await self.list_zones()
        try:
            zone = select_zone(zones, record_name)
        except ZoneNotFoundError as e:
            logger.error(str(e), extra={"record_name": record_name, **get_challenge_extra()})
            return None
        return zone.id

    def _record_set(self, record_name: str, token: str) -> dict[str, Any]:
        return {
            "Name": record_name,
            "Type": "TXT",
            "TTL": self.options.ttl,
            "ResourceRecords": [{"Value": f'"{token}"'}],
        }

    async def _change_record(
        self, zone_id: str, action: ChangeAction, record_name: str, token: str
    ) -> ChangeInfo:
        response = await self._call(
            "change_resource_record_sets",
            HostedZoneId=zone_id,
            ChangeBatch={
                "Changes": [
                    {
                        "Action": action.value,
                        "ResourceRecordSet": self._record_set(record_name, token),
                    }
                ]
            },
        )
        return ChangeInfo.model_validate(response["ChangeInfo"])

    async def create_record(self, record_name: str, token: str) -> None:
        """Upsert the TXT record and wait for Route 53 to report it in sync.

        Does nothing (beyond logging) when no hosted zone owns the record.

        Raises:
            botocore.exceptions.ClientError: If the Route 53 API rejects a call.
            PropagationTimeoutError: If the change does not sync in time.
        """
        zone_id = await self.get_hosted_zone_id(record_name)
        if zone_id is None:
            return

        logger.info(
            "Creating TXT record",
            extra={"record_name": record_name, "value": token, "zone_id": zone_id},
        )
        change = await self._change_record(zone_id, ChangeAction.UPSERT, record_name, token)
        await self.wait_for_change(change)

    async def delete_record(self, record_name: str, token: str) -> None:
        """Delete the TXT record without waiting for propagation.

        Does nothing (beyond logging) when no hosted zone owns the record.

        Raises:
            botocore.exceptions.ClientError: If the Route 53 API rejects a call.
        """
        zone_id = await self.get_hosted_zone_id(record_name)
        if zone_id is None:
            return

        logger.info(
            "Deleting TXT record",
            extra={"record_name": record_name, "value": token, "zone_id": zone_id},
        )
        await self._change_record(zone_id, ChangeAction.DELETE, record_name, token)

    async def wait_for_change(self, change: ChangeInfo) -> None:
        """Poll a change until Route 53 reports it as INSYNC.

        Polls every ``options.poll_interval`` seconds. Without
        ``options.propagation_timeout`` or ``options.max_poll_attempts``
        the wait only ends once the change is in sync.

        Args:
            change: The change returned when the record set was submitted.

        Raises:
            PropagationTimeoutError: If a bound is reached while still PENDING.
        """
        if change.status == PropagationState.INSYNC:
            return

        logger.info("Waiting for DNS changes propagation", extra={"change_id": change.id})

        timeout = self.options.propagation_timeout
        max_attempts = self.options.max_poll_attempts
        attempts = 0

        with Stopwatch() as watch:
            while True:
                response = await self._call("get_change", Id=change.id)
                attempts += 1
                status = ChangeInfo.model_validate(response["ChangeInfo"]).status
                if status == PropagationState.INSYNC:
                    break

                if (max_attempts is not None and attempts >= max_attempts) or (
                    timeout is not None and watch.elapsed >= timeout
                ):
                    logger.error(
                        "DNS changes did not propagate",
                        extra={"change_id": change.id, "attempts": attempts},
                    )
                    raise PropagationTimeoutError(change.id, attempts, watch.elapsed)

                await asyncio.sleep(self.options.poll_interval)

        logger.info(
            "DNS changes propagated",
            extra={
                "change_id": change.id,
                "attempts": attempts,
                "elapsed_ms": watch.elapsed_ms,
            },
        )
