"""Challenge fulfillment exceptions."""

import errno


class DomainProofError(Exception):
    """Base exception for challenge fulfillment errors."""

    pass


class ConfigurationError(DomainProofError):
    """Options are invalid or do not fit the challenge they were given."""

    pass


class ChallengeStateError(DomainProofError):
    """A plugin was driven through its lifecycle in an invalid order."""

    pass


class ListenerBindError(DomainProofError):
    """The self-hosted listener could not bind its address.

    The message tells apart the two common causes: missing privileges
    for a well-known port, and another service already owning the port.
    """

    def __init__(self, host: str, port: int, reason: str):
        self.host = host
        self.port = port
        self.reason = reason
        super().__init__(f"Unable to listen on {host}:{port}: {reason}")

    @classmethod
    def from_os_error(cls, error: OSError, host: str, port: int) -> "ListenerBindError":
        """Create a ListenerBindError from the error raised while binding.

        Args:
            error: The OSError raised by the socket layer.
            host: Host the listener tried to bind.
            port: Port the listener tried to bind.

        Returns:
            ListenerBindError with an actionable reason.
        """
        if error.errno in (errno.EACCES, errno.EPERM):
            reason = (
                "permission denied, run with administrator/root privileges "
                "to bind a well-known port"
            )
        elif error.errno == errno.EADDRINUSE:
            reason = "port is already in use by another service, stop it or configure another port"
        else:
            reason = (
                "this may be because of insufficient rights or another "
                f"webserver using port {port} ({error})"
            )
        return cls(host=host, port=port, reason=reason)


class ZoneNotFoundError(DomainProofError):
    """No hosted zone owns the requested record name."""

    def __init__(self, record_name: str):
        self.record_name = record_name
        super().__init__(f"Can't find hosted zone for domain {record_name}")


class PropagationTimeoutError(DomainProofError):
    """The DNS provider did not report a change as in sync in time."""

    def __init__(self, change_id: str, attempts: int, elapsed: float):
        self.change_id = change_id
        self.attempts = attempts
        self.elapsed = elapsed
        super().__init__(
            f"Change {change_id} still pending after {attempts} polls ({elapsed:.1f}s)"
        )
