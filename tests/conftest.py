"""Pytest fixtures for domainproof test suite."""

import logging
import logging.handlers
from collections.abc import Generator
from datetime import UTC, datetime
from typing import Any
from unittest.mock import MagicMock

import pytest

from domainproof.models import DnsChallenge, HttpChallenge, Route53Options, SelfHostingOptions

LOOPBACK = "127.0.0.1"


class StubUserRole:
    """User role service with a fixed answer."""

    def __init__(self, is_admin: bool) -> None:
        self.is_admin = is_admin


@pytest.fixture
def admin_role() -> StubUserRole:
    return StubUserRole(is_admin=True)


@pytest.fixture
def unprivileged_role() -> StubUserRole:
    return StubUserRole(is_admin=False)


@pytest.fixture
def http_challenge() -> HttpChallenge:
    """Return a challenge served below the well-known prefix."""
    return HttpChallenge(
        resource_path=".well-known/acme-challenge/evaGxfADs6pSRb2LAv9IZf17Dt3juxGJ-PCt92wr-oA",
        resource_value=(
            "evaGxfADs6pSRb2LAv9IZf17Dt3juxGJ-PCt92wr-oA."
            "yB_0xL-h7D4c5VZ3qG0UPIK8hEtD4gPVKg6eT7N8Ghk"
        ),
    )


@pytest.fixture
def loopback_options() -> SelfHostingOptions:
    """Listener options on an ephemeral loopback port."""
    return SelfHostingOptions(host=LOOPBACK, port=0)


@pytest.fixture
def dns_challenge() -> DnsChallenge:
    return DnsChallenge(
        record_name="_acme-challenge.www.example.com",
        token="LoqXcYV8q5ONbJQxbmR7SCTNo3tiAXDfowyjxAjEuX0",
    )


@pytest.fixture
def route53_options() -> Route53Options:
    """Route 53 options with fast polling for tests."""
    return Route53Options(poll_interval=0)


def hosted_zone(zone_id: str, name: str) -> dict[str, Any]:
    """Build a hosted zone entry as returned by list_hosted_zones."""
    return {
        "Id": f"/hostedzone/{zone_id}",
        "Name": name,
        "CallerReference": f"ref-{zone_id}",
        "Config": {"PrivateZone": False},
        "ResourceRecordSetCount": 2,
    }


def change_info(status: str, change_id: str = "/change/C2682N5HXP0BZ4") -> dict[str, Any]:
    """Build a change_resource_record_sets / get_change response body."""
    return {
        "ChangeInfo": {
            "Id": change_id,
            "Status": status,
            "SubmittedAt": datetime(2026, 10, 19, 12, 0, tzinfo=UTC),
        }
    }


@pytest.fixture
def route53_client() -> MagicMock:
    """Mocked boto3 Route 53 client owning example.com and www.example.com."""
    client = MagicMock()
    client.list_hosted_zones.return_value = {
        "HostedZones": [
            hosted_zone("Z1EXAMPLE", "example.com."),
            hosted_zone("Z2WWW", "www.example.com."),
        ],
        "IsTruncated": False,
        "MaxItems": "100",
    }
    client.change_resource_record_sets.return_value = change_info("INSYNC")
    client.get_change.return_value = change_info("INSYNC")
    return client


class LogCapture:
    """Helper class to capture and inspect log records."""

    def __init__(self, handler: logging.handlers.MemoryHandler) -> None:
        self._handler = handler

    @property
    def records(self) -> list[logging.LogRecord]:
        """Get all captured log records."""
        return self._handler.buffer

    def get_records(
        self, level: int | None = None, name: str | None = None
    ) -> list[logging.LogRecord]:
        """Get log records filtered by level and/or logger name.

        Args:
            level: Filter by log level (e.g., logging.INFO).
            name: Filter by logger name prefix (e.g., "domainproof.providers").

        Returns:
            List of matching log records.
        """
        records = self.records
        if level is not None:
            records = [r for r in records if r.levelno == level]
        if name is not None:
            records = [r for r in records if r.name.startswith(name)]
        return records

    def get_messages(self, level: int | None = None, name: str | None = None) -> list[str]:
        """Get log messages filtered by level and/or logger name."""
        return [r.getMessage() for r in self.get_records(level, name)]

    def clear(self) -> None:
        """Clear all captured log records."""
        self._handler.buffer.clear()


@pytest.fixture
def log_capture() -> Generator[LogCapture]:
    """Capture logs from the domainproof library during a test.

    Usage:
        def test_something(log_capture):
            # do something that logs
            assert "Creating TXT record" in log_capture.get_messages(logging.INFO)
    """
    # Capacity is large enough that the handler never flushes mid-test
    handler = logging.handlers.MemoryHandler(capacity=1000)
    handler.setLevel(logging.DEBUG)

    root_logger = logging.getLogger("domainproof")
    original_level = root_logger.level
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(handler)

    try:
        yield LogCapture(handler)
    finally:
        root_logger.removeHandler(handler)
        root_logger.setLevel(original_level)
        handler.close()
