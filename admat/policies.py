"""Policies controlling how failed checks are reported.

Each check in :py:mod:`admat.checks` returns a :py:class:`Success` when its
condition holds. When the condition fails the check builds a :py:class:`Diagnostic`
describing the failure and passes it to an :py:class:`ErrorPolicy`, which either
raises an exception or returns a :py:class:`Failure` carrying the diagnostic and a
fallback value for the caller to use in place of a computed result.
"""

from __future__ import annotations

import abc
import logging
from math import nan
from typing import TYPE_CHECKING, NamedTuple
from warnings import warn

from admat.errors import DomainError

if TYPE_CHECKING:
    from typing import Any

    from admat.errors import Error


logger = logging.getLogger(__name__)


class Diagnostic(NamedTuple):
    """Description of a failed check.

    Attributes:
        function: Name of function the check was called from.
        name: Name of the argument which failed the check.
        template: Human readable explanation, with the placeholder ``{value}``
            standing in for the observed value.
        value: Observed value which failed the check.
        index: Index of the offending entry of the argument, or `None` if the
            argument is a scalar or the failure is not tied to an entry.
        error_class: Exception type used when the failure is raised.
    """

    function: str
    name: str
    template: str
    value: Any
    index: tuple[int, ...] | None = None
    error_class: type[Error] = DomainError

    @property
    def message(self) -> str:
        """Diagnostic rendered as a single line of text."""
        return f"{self.function}: " + self.template.replace("{value}", str(self.value))


class Success:
    """Result of a check whose condition holds."""

    __slots__ = ()

    def __bool__(self) -> bool:
        return True

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Success)

    def __hash__(self) -> int:
        return hash(Success)

    def __repr__(self) -> str:
        return "Success()"


class Failure(NamedTuple):
    """Result of a check whose condition does not hold.

    Attributes:
        diagnostic: Description of the failure.
        fallback: Value the caller may use in place of a computed result.
    """

    diagnostic: Diagnostic
    fallback: Any = None

    def __bool__(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return self.diagnostic.message


class ErrorPolicy(abc.ABC):
    """Strategy for handling a failed check."""

    @abc.abstractmethod
    def handle(self, diagnostic: Diagnostic) -> Failure:
        """Handle a failed check.

        Args:
            diagnostic: Description of the failure.

        Returns:
            Failure result to return from the check. Implementations may instead
            raise an exception.
        """

    def __repr__(self) -> str:
        return type(self).__name__ + "()"


class RaiseError(ErrorPolicy):
    """Raise the exception type recorded in the diagnostic."""

    def handle(self, diagnostic: Diagnostic) -> Failure:
        raise diagnostic.error_class(diagnostic.message, diagnostic)


class ReturnSentinel(ErrorPolicy):
    """Return a failure result carrying a sentinel value instead of raising."""

    def __init__(self, value: Any = nan) -> None:  # noqa: ANN401
        """
        Args:
            value: Fallback value to attach to returned failure results.
        """
        self.value = value

    def handle(self, diagnostic: Diagnostic) -> Failure:
        logger.debug("Check failed, returning sentinel: %s", diagnostic.message)
        return Failure(diagnostic, self.value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(value={self.value!r})"


class WarnAndReturnSentinel(ReturnSentinel):
    """Issue a warning then return a failure result carrying a sentinel value."""

    def __init__(
        self,
        value: Any = nan,  # noqa: ANN401
        category: type[Warning] = RuntimeWarning,
    ) -> None:
        """
        Args:
            value: Fallback value to attach to returned failure results.
            category: Warning category to issue.
        """
        super().__init__(value)
        self.category = category

    def handle(self, diagnostic: Diagnostic) -> Failure:
        warn(diagnostic.message, self.category, stacklevel=3)
        return super().handle(diagnostic)


DEFAULT_POLICY: ErrorPolicy = RaiseError()
