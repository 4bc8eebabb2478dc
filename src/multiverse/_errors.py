"""Exception hierarchy for multiverse."""

from __future__ import annotations


class MultiverseError(Exception):
    """Base class for all multiverse errors."""


class DeclarationError(MultiverseError, ValueError):
    """A parameter, option, condition, or step declaration is invalid.

    Declaration errors are raised immediately when the offending declaration
    is made and abort the run.
    """


class DuplicateParameterError(DeclarationError):
    """A parameter with the same name is already declared."""


class DuplicateOptionError(DeclarationError):
    """Two options of the same parameter share a name."""


class InvalidConditionReferenceError(DeclarationError):
    """A condition refers to a parameter that is not declared before it."""


class UnknownParameterError(DeclarationError):
    """A step refers to a parameter that has not been declared."""


class PipelineDeclarationError(DeclarationError):
    """A pipeline step cannot be wired to its inputs."""


class ConditionEvaluationError(MultiverseError, LookupError):
    """A condition was evaluated against an assignment missing a referenced parameter."""


class ExecutionError(MultiverseError):
    """A universe's pipeline failed.

    Instances are recorded on the universe result instead of being raised,
    so a failing universe never aborts the rest of the run.

    Attributes:
        universe_id: Identifier of the failed universe.
        step: Name of the step that failed, if any.
        cause: The original exception, if any.

    """

    def __init__(
        self,
        message: str,
        *,
        universe_id: int,
        step: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.universe_id = universe_id
        self.step = step
        self.cause = cause

    @property
    def description(self) -> str:
        """Human-readable description of the failure cause."""
        if self.cause is None:
            return str(self)
        return f"{type(self.cause).__name__}: {self.cause}"


class UniverseTimeoutError(ExecutionError):
    """A universe did not finish within the configured timeout."""


class ExportValidationError(MultiverseError, ValueError):
    """An export input is malformed; nothing was written.

    Attributes:
        field: The offending field name.
        universe_id: The universe the offending record belongs to, if any.

    """

    def __init__(self, message: str, *, field: str, universe_id: int | None = None) -> None:
        location = f"field '{field}'"
        if universe_id is not None:
            location += f" of universe {universe_id}"
        super().__init__(f"{message} ({location})")
        self.field = field
        self.universe_id = universe_id


class DistributionError(MultiverseError, ValueError):
    """An outcome's distribution object failed while being sampled.

    Attributes:
        term: The outcome term whose distribution failed.

    """

    def __init__(self, message: str, *, term: str) -> None:
        super().__init__(message)
        self.term = term
