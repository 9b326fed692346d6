"""Self-hosted listener for HTTP-01 challenges."""

import asyncio
import ssl

import httpx
from aiohttp import hdrs, web

from domainproof._logging import challenge_context, get_challenge_extra, get_logger
from domainproof.challenges.base import ValidationPlugin
from domainproof.exceptions import ChallengeStateError, ConfigurationError, ListenerBindError
from domainproof.models import (
    CHALLENGE_PATH_PREFIX,
    DEFAULT_HTTP_PORT,
    DEFAULT_HTTPS_PORT,
    HttpChallenge,
    SelfHostingOptions,
)
from domainproof.system import UserRoleService

logger = get_logger(__name__)


class SelfHosting(ValidationPlugin):
    """Serve an HTTP-01 challenge from a built-in web listener.

    The listener binds ``options.host`` (the wildcard address by default)
    on port 80, 443 when ``options.https`` is set, or ``options.port``,
    and answers requests below ``/.well-known/acme-challenge/``.

    Args:
        challenge: The resource path and value to serve.
        options: Listener options.
        user_role: Privilege query used by the ``disabled`` check.
    """

    challenge_type = "http-01"

    def __init__(
        self,
        challenge: HttpChallenge,
        options: SelfHostingOptions | None = None,
        user_role: UserRoleService | None = None,
    ):
        self.challenge = challenge
        self.options = options or SelfHostingOptions()
        self.user_role = user_role or UserRoleService()

        self._files: dict[str, str] = {}
        self._runner: web.AppRunner | None = None
        self._stop: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def files(self) -> dict[str, str]:
        """Served files, keyed by absolute URL path."""
        return dict(self._files)

    @property
    def prefix(self) -> str:
        """URL prefix the listener answers, e.g. ``http://+:80/.well-known/acme-challenge/``."""
        return f"{self.options.scheme}://+:{self.options.effective_port}{CHALLENGE_PATH_PREFIX}"

    @property
    def is_listening(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def port(self) -> int | None:
        """Port the listener is bound to, or None when not listening."""
        if self._runner is None:
            return None
        for address in self._runner.addresses:
            # (host, port) for IPv4, (host, port, flowinfo, scope_id) for IPv6
            return address[1]
        return None

    @property
    def disabled(self) -> tuple[bool, str | None]:
        return self.is_disabled(self.user_role)

    @staticmethod
    def is_disabled(user_role: UserRoleService) -> tuple[bool, str | None]:
        """Check whether the built-in listener can be used.

        Args:
            user_role: Privilege query for the current process.

        Returns:
            (True, reason) without elevated privileges, (False, None) otherwise.
        """
        if not user_role.is_admin:
            return True, "Run as administrator to allow use of the built-in web listener."
        return False, None

    async def prepare_challenge(self) -> None:
        """Register the challenge file and start the listener.

        Returns once the listener is bound; requests are served by a
        background task until cleanup().

        Raises:
            ChallengeStateError: If this instance is already listening.
            ConfigurationError: If HTTPS is requested without a certificate.
            ListenerBindError: If the address cannot be bound.
        """
        if self._runner is not None:
            raise ChallengeStateError(f"Listener already active on {self.prefix}")

        ssl_context = self._create_ssl_context()
        self._files[self.challenge.url_path] = self.challenge.resource_value

        with challenge_context(self.challenge_type, self.challenge.url_path):
            app = web.Application()
            # Every method, so that anything but a GET hit answers 404 like a miss
            app.router.add_route("*", CHALLENGE_PATH_PREFIX + "{name:.*}", self._handle_request)

            runner = web.AppRunner(app, access_log=None)
            await runner.setup()
            site = web.TCPSite(
                runner,
                self.options.host,
                self.options.effective_port,
                ssl_context=ssl_context,
            )
            try:
                await site.start()
            except OSError as e:
                await runner.cleanup()
                logger.error(
                    "Unable to activate HTTP listener",
                    extra={"prefix": self.prefix, "error": str(e), **get_challenge_extra()},
                )
                raise ListenerBindError.from_os_error(
                    e, self.options.host, self.options.effective_port
                ) from e

            self._runner = runner
            self._stop = asyncio.Event()
            self._task = asyncio.create_task(
                self._serve(runner, self._stop),
                name=f"self-hosting:{self.prefix}",
            )
            logger.info(
                "Listening for challenge requests",
                extra={"prefix": self.prefix, "port": self.port, **get_challenge_extra()},
            )

    async def cleanup(self) -> None:
        """Stop the listener and forget the served files.

        Errors while stopping are logged and suppressed, as is the
        cancellation of a serving task cancelled from elsewhere.
        Cancelling the caller of cleanup() still propagates.
        """
        task, stop, runner = self._task, self._stop, self._runner
        self._runner = None
        self._task = None
        self._stop = None
        self._files.clear()

        if task is None or stop is None or runner is None:
            return

        stop.set()
        try:
            await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            logger.debug("HTTP listener task was cancelled", extra={"prefix": self.prefix})
        except Exception as e:
            logger.warning(
                "Error stopping HTTP listener",
                extra={"prefix": self.prefix, "error": str(e)},
            )

        # A task cancelled before it first ran never released the runner
        if runner.server is not None:
            try:
                await runner.cleanup()
            except Exception as e:
                logger.warning(
                    "Error stopping HTTP listener",
                    extra={"prefix": self.prefix, "error": str(e)},
                )
        logger.debug("HTTP listener stopped", extra={"prefix": self.prefix})

    async def self_check(self, domain: str, timeout: float = 10.0) -> tuple[bool, str | None]:
        """Fetch the challenge through its public URL and compare the answer.

        Args:
            domain: The domain being validated.
            timeout: Request timeout in seconds.

        Returns:
            Tuple of (success, error_message).
        """
        port = self.options.effective_port
        default_port = DEFAULT_HTTPS_PORT if self.options.https else DEFAULT_HTTP_PORT
        authority = domain if port == default_port else f"{domain}:{port}"
        url = f"{self.options.scheme}://{authority}{self.challenge.url_path}"

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.get(url, follow_redirects=False)
        except httpx.TimeoutException:
            return False, f"Timeout connecting to {url}"
        except httpx.HTTPError as e:
            return False, f"Connection error: {e}"

        if response.status_code != 200:
            return False, f"HTTP {response.status_code} (expected 200)"
        if response.text != self.challenge.resource_value:
            return False, "Response does not match expected key authorization"
        return True, None

    async def _serve(self, runner: web.AppRunner, stop: asyncio.Event) -> None:
        try:
            await stop.wait()
        finally:
            await runner.cleanup()

    async def _handle_request(self, request: web.Request) -> web.Response:
        path = request.path
        value = self._files.get(path)
        if value is not None and request.method in (hdrs.METH_GET, hdrs.METH_HEAD):
            logger.debug("Serving challenge file", extra={"path": path})
            return web.Response(text=value)

        logger.warning(
            "Unable to serve challenge file",
            extra={"path": path, "method": request.method},
        )
        return web.Response(status=404)

    def _create_ssl_context(self) -> ssl.SSLContext | None:
        if not self.options.https:
            return None
        if not self.options.certfile:
            raise ConfigurationError("HTTPS listener requires a certfile")
        context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        context.load_cert_chain(self.options.certfile, self.options.keyfile)
        return context
