"""Pydantic models for challenge tokens, DNS zones and plugin options."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, SecretStr

DEFAULT_HTTP_PORT = 80
DEFAULT_HTTPS_PORT = 443
CHALLENGE_PATH_PREFIX = "/.well-known/acme-challenge/"

# =============================================================================
# Enums
# =============================================================================


class PropagationState(StrEnum):
    """Provider view of a submitted DNS change."""

    PENDING = "PENDING"
    INSYNC = "INSYNC"


class ChangeAction(StrEnum):
    """Record set change actions."""

    UPSERT = "UPSERT"
    DELETE = "DELETE"


class CredentialMode(StrEnum):
    """How the DNS provider client authenticates."""

    IAM_ROLE = "iam_role"
    ACCESS_KEY = "access_key"
    AMBIENT = "ambient"


# =============================================================================
# Challenge tokens
# =============================================================================


class HttpChallenge(BaseModel):
    """Resource served by the self-hosted listener.

    ``resource_path`` is relative to the site root, for example
    ``.well-known/acme-challenge/<token>``.
    """

    resource_path: str
    resource_value: str

    model_config = {"frozen": True}

    @property
    def url_path(self) -> str:
        """Absolute URL path the resource is served at."""
        return "/" + self.resource_path.lstrip("/")


class DnsChallenge(BaseModel):
    """TXT record published through the DNS provider."""

    record_name: str
    token: str

    model_config = {"frozen": True}


# =============================================================================
# DNS provider resources
# =============================================================================


class ManagedZone(BaseModel):
    """Hosted zone as listed by the provider."""

    id: str = Field(alias="Id")
    dns_name: str = Field(alias="Name")

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def normalized_name(self) -> str:
        """Lower-cased zone name without the trailing dot."""
        return self.dns_name.rstrip(".").lower()


class ZoneCandidate(BaseModel):
    """Zone scored against a record name during zone resolution."""

    zone: ManagedZone
    specificity: int


class ChangeInfo(BaseModel):
    """Status of a submitted record set change."""

    id: str = Field(alias="Id")
    status: PropagationState = Field(alias="Status")
    submitted_at: datetime | None = Field(default=None, alias="SubmittedAt")

    model_config = {"populate_by_name": True}


# =============================================================================
# Plugin options
# =============================================================================


class SelfHostingOptions(BaseModel):
    """Options for the self-hosted HTTP listener."""

    port: int | None = Field(default=None, ge=0, le=65535)
    https: bool = False
    host: str = "0.0.0.0"
    certfile: str | None = None
    keyfile: str | None = None

    model_config = {"frozen": True}

    @property
    def effective_port(self) -> int:
        """Configured port, or the protocol default."""
        if self.port is not None:
            return self.port
        return DEFAULT_HTTPS_PORT if self.https else DEFAULT_HTTP_PORT

    @property
    def scheme(self) -> str:
        return "https" if self.https else "http"


class Route53Options(BaseModel):
    """Options for the Route 53 DNS provider.

    Exactly one credential source is used: an IAM role to assume, an
    access key pair, or the ambient boto3 credential chain.
    """

    iam_role: str | None = None
    access_key_id: str | None = None
    secret_access_key: SecretStr | None = None
    region: str = "us-east-1"
    proxy: str | None = None
    ttl: int = Field(default=1, ge=1)
    poll_interval: float = Field(default=5.0, ge=0)
    # Both None: the propagation wait runs until the change is INSYNC
    propagation_timeout: float | None = Field(default=None, gt=0)
    max_poll_attempts: int | None = Field(default=None, ge=1)

    model_config = {"frozen": True}

    @property
    def credential_mode(self) -> CredentialMode:
        """Credential source selected by the configured values."""
        if self.iam_role and self.iam_role.strip():
            return CredentialMode.IAM_ROLE
        secret = self.secret_access_key.get_secret_value() if self.secret_access_key else ""
        if self.access_key_id and self.access_key_id.strip() and secret.strip():
            return CredentialMode.ACCESS_KEY
        return CredentialMode.AMBIENT
