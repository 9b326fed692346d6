"""Base class for challenge validation plugins."""

from abc import ABC, abstractmethod
from typing import ClassVar


class ValidationPlugin(ABC):
    """Abstract base class for challenge validation plugins.

    A plugin makes one challenge observable to the certificate
    authority. The caller prepares it, waits for the authority to
    validate, then cleans up:

        async with plugin:
            await submit_and_poll_challenge()
    """

    # ACME challenge type, e.g. "http-01"
    challenge_type: ClassVar[str]

    @abstractmethod
    async def prepare_challenge(self) -> None:
        """Make the challenge observable (serve the file, publish the record).

        Returns as soon as the challenge can be validated; it does not
        wait for the validation itself.
        """
        ...

    @abstractmethod
    async def cleanup(self) -> None:
        """Remove whatever prepare_challenge() set up.

        Must never raise, and must be safe to call more than once or
        without a prior prepare_challenge().
        """
        ...

    @property
    def disabled(self) -> tuple[bool, str | None]:
        """Report whether this plugin can run in the current context.

        Returns:
            (True, reason) when unusable, (False, None) otherwise.
        """
        return False, None

    async def __aenter__(self) -> "ValidationPlugin":
        try:
            await self.prepare_challenge()
        except BaseException:
            await self.cleanup()
            raise
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.cleanup()
