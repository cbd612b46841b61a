"""Exception types."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from admat.policies import Diagnostic


class Error(Exception):
    """Base class for errors."""

    def __init__(self, msg: str, diagnostic: Diagnostic | None = None) -> None:
        super().__init__(msg)
        self.diagnostic = diagnostic

    @property
    def function(self) -> str | None:
        """Name of function the failing check was called from."""
        return None if self.diagnostic is None else self.diagnostic.function

    @property
    def name(self) -> str | None:
        """Name of argument which failed the check."""
        return None if self.diagnostic is None else self.diagnostic.name

    @property
    def index(self) -> tuple[int, ...] | None:
        """Index of offending entry of argument, if any."""
        return None if self.diagnostic is None else self.diagnostic.index

    @property
    def value(self) -> object:
        """Observed value which failed the check."""
        return None if self.diagnostic is None else self.diagnostic.value


class InvalidArgumentError(Error, ValueError):
    """Error raised when a precondition on the arguments to a function is violated."""


class DomainError(Error, ValueError):
    """Error raised when a value lies outside the domain a function accepts."""
