from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ._condition import Condition, condition_from_mapping
from ._errors import (
    DeclarationError,
    DuplicateOptionError,
    DuplicateParameterError,
    InvalidConditionReferenceError,
    PipelineDeclarationError,
    UnknownParameterError,
)
from ._expand import Universe, expand

logger = logging.getLogger(__name__)

DATA_INPUT = "data"
UNIVERSE_INPUT = "universe"
RESERVED_INPUTS = frozenset({DATA_INPUT, UNIVERSE_INPUT})

type OptionLike = Option | str | tuple[Any, ...]


@dataclass(frozen=True, slots=True)
class Option:
    """A named alternative of a parameter.

    Attributes:
        name: Unique name within the parameter.
        value: The value substituted into a step, or a callable used as the
            step implementation for `Multiverse.branch` steps.
        condition: Validity condition over earlier parameters. ``None`` means
            the option is always valid.

    """

    name: str
    value: Any = None
    condition: Condition | None = None


@dataclass(frozen=True, slots=True)
class Parameter:
    """A decision point with an ordered tuple of options."""

    name: str
    options: tuple[Option, ...]

    @property
    def option_names(self) -> tuple[str, ...]:
        """Option names in declaration order."""
        return tuple(option.name for option in self.options)

    def option(self, name: str) -> Option:
        """Look up an option by name."""
        for option in self.options:
            if option.name == name:
                return option
        msg = f"Option '{name}' not found in parameter '{self.name}'."
        raise KeyError(msg)


def _to_option(entry: OptionLike, parameter_name: str) -> Option:
    """Normalize the accepted option spellings to an `Option`.

    Accepted forms are an `Option`, a bare name (the value is the name itself),
    ``(name, value)`` and ``(name, value, condition)`` where the condition is a
    `Condition` or a mapping of required choices.
    """
    if isinstance(entry, Option):
        return entry
    if isinstance(entry, str):
        return Option(name=entry, value=entry)
    if isinstance(entry, tuple) and len(entry) in (2, 3):
        name, value, *rest = entry
        condition = rest[0] if rest else None
        if isinstance(condition, Mapping):
            condition = condition_from_mapping(condition)
        if condition is not None and not isinstance(condition, Condition):
            msg = f"Condition of option '{name}' in parameter '{parameter_name}' must be a Condition or a mapping."
            raise DeclarationError(msg)
        if not isinstance(name, str):
            msg = f"Option names must be strings, got {name!r} in parameter '{parameter_name}'."
            raise DeclarationError(msg)
        return Option(name=name, value=value, condition=condition)
    msg = f"Cannot interpret {entry!r} as an option of parameter '{parameter_name}'."
    raise DeclarationError(msg)


def _get_input_names(func: Callable[..., Any], owner: str) -> tuple[str, ...]:
    """Extract the names a step function expects to be bound.

    Parameters with defaults are included; the engine only passes them when a
    value is available.

    Raises:
        PipelineDeclarationError: If the function has positional-only parameters.

    """
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError) as e:
        msg = f"Cannot inspect the signature of step '{owner}'."
        raise PipelineDeclarationError(msg) from e

    names: list[str] = []
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.POSITIONAL_ONLY:
            msg = f"Step '{owner}' has positional-only parameter '{param.name}'; inputs are bound by name."
            raise PipelineDeclarationError(msg)
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        names.append(param.name)
    return tuple(names)


def _required_input_names(func: Callable[..., Any]) -> frozenset[str]:
    sig = inspect.signature(func)
    return frozenset(
        param.name
        for param in sig.parameters.values()
        if param.default is inspect.Parameter.empty
        and param.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    )


@dataclass(slots=True)
class Step:
    """A step of the shared pipeline.

    A step is parameter-free when `parameter` is ``None``. A parameterized
    step either calls `func` with the chosen option's value bound to the
    keyword named after the parameter, or, when `func` is ``None``, calls the
    chosen option's value itself (each option is a variant of the step).

    Attributes:
        name: Unique step name; later steps receive this step's output
            through a function parameter of the same name.
        func: The step implementation, or ``None`` for option variants.
        parameter: The parameter this step depends on, if any.
        outcome: Whether the step's return value is a result to summarize.
        mutable_data: Whether the step receives a private mutable copy of the
            dataset instead of the shared read-only one.
        source: Display source for code export. Defaults to the source of the
            function(s).

    """

    name: str
    func: Callable[..., Any] | None = field(repr=False)
    parameter: Parameter | None = None
    outcome: bool = False
    mutable_data: bool = False
    source: str | None = field(default=None, repr=False)

    # Fields initialized in __post_init__
    inputs: dict[str | None, tuple[str, ...]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.func is None:
            if self.parameter is None:
                msg = f"Step '{self.name}' needs a function or a parameter whose options are callables."
                raise PipelineDeclarationError(msg)
            self.inputs = {}
            for option in self.parameter.options:
                if not callable(option.value):
                    msg = (
                        f"Option '{option.name}' of parameter '{self.parameter.name}' is not callable,"
                        f" so it cannot be used as a variant of step '{self.name}'."
                    )
                    raise PipelineDeclarationError(msg)
                self.inputs[option.name] = _get_input_names(option.value, f"{self.name}[{option.name}]")
        else:
            self.inputs = {None: _get_input_names(self.func, self.name)}

    @property
    def is_parameterized(self) -> bool:
        return self.parameter is not None

    def resolve(self, choice: str | None) -> tuple[Callable[..., Any], tuple[str, ...]]:
        """Return the callable and input names to run for the given option choice."""
        if self.func is not None:
            return self.func, self.inputs[None]
        if self.parameter is None or choice is None:
            msg = f"Step '{self.name}' requires an option choice."
            raise ValueError(msg)
        return self.parameter.option(choice).value, self.inputs[choice]

    def implementations(self) -> Iterable[Callable[..., Any]]:
        """Iterate over every callable this step may run."""
        if self.func is not None:
            yield self.func
        elif self.parameter is not None:
            for option in self.parameter.options:
                yield option.value


@dataclass(slots=True)
class Multiverse:
    """Declarations of a multiverse analysis: parameters, options, and the pipeline.

    This is the explicit context every operation takes. Parameters and steps
    are kept in declaration order, which fixes the expansion order and is the
    only direction in which conditions may refer to other parameters.

    Example:
        >>> mv = Multiverse("example")
        >>> mv.declare("A", ["a1", "a2"])
        Parameter(name='A', ...)
        >>> mv.declare("B", [("b1", 1, Is("A", "a1")), ("b2", 2)])
        Parameter(name='B', ...)
        >>> [dict(u.choices) for u in mv.universes()]
        [{'A': 'a1', 'B': 'b1'}, {'A': 'a1', 'B': 'b2'}, {'A': 'a2', 'B': 'b2'}]

    """

    name: str
    _parameters: dict[str, Parameter] = field(default_factory=dict)
    _steps: dict[str, Step] = field(default_factory=dict)

    @property
    def parameters(self) -> dict[str, Parameter]:
        """Declared parameters in declaration order."""
        return self._parameters

    @property
    def steps(self) -> dict[str, Step]:
        """Pipeline steps in execution order."""
        return self._steps

    def parameter(self, name: str) -> Parameter:
        """Look up a declared parameter."""
        try:
            return self._parameters[name]
        except KeyError:
            msg = f"Parameter '{name}' is not declared in multiverse '{self.name}'."
            raise UnknownParameterError(msg) from None

    def declare(self, name: str, options: Iterable[OptionLike]) -> Parameter:
        """Declare a parameter with its ordered options.

        Args:
            name: Unique parameter name.
            options: Options as `Option` instances, bare names, or
                ``(name, value[, condition])`` tuples.

        Returns:
            The declared parameter.

        Raises:
            DuplicateParameterError: If the name is already declared.
            DuplicateOptionError: If two options share a name.
            InvalidConditionReferenceError: If a condition references a parameter
                not declared before this one, or an option that parameter lacks.

        """
        if name in self._parameters:
            msg = f"Parameter '{name}' is already declared in multiverse '{self.name}'."
            raise DuplicateParameterError(msg)
        if name in RESERVED_INPUTS:
            msg = f"'{name}' is a reserved name and cannot be used as a parameter."
            raise DeclarationError(msg)

        parsed = tuple(_to_option(entry, name) for entry in options)
        if not parsed:
            msg = f"Parameter '{name}' must have at least one option."
            raise DeclarationError(msg)

        seen: set[str] = set()
        for option in parsed:
            if option.name in seen:
                msg = f"Option '{option.name}' appears more than once in parameter '{name}'."
                raise DuplicateOptionError(msg)
            seen.add(option.name)
            if option.condition is not None:
                self._check_condition(name, option.name, option.condition)

        parameter = Parameter(name=name, options=parsed)
        self._parameters[name] = parameter
        logger.debug(f"Declared parameter '{name}' with options {list(parameter.option_names)}")
        return parameter

    def _check_condition(self, parameter_name: str, option_name: str, condition: Condition) -> None:
        for ref_param, ref_option in sorted(condition.tests()):
            referenced = self._parameters.get(ref_param)
            if referenced is None:
                msg = (
                    f"Condition of option '{option_name}' in parameter '{parameter_name}' references"
                    f" '{ref_param}', which is not declared before '{parameter_name}'."
                )
                raise InvalidConditionReferenceError(msg)
            if ref_option not in referenced.option_names:
                msg = (
                    f"Condition of option '{option_name}' in parameter '{parameter_name}' references"
                    f" option '{ref_option}', which parameter '{ref_param}' does not have."
                )
                raise InvalidConditionReferenceError(msg)

    def add_step(self, step: Step) -> Step:
        """Append a step to the pipeline after validating its inputs.

        Raises:
            PipelineDeclarationError: If the name is taken or an input cannot be bound.
            UnknownParameterError: If the step's parameter is not declared.

        """
        if step.name in self._steps:
            msg = f"Step '{step.name}' already exists in multiverse '{self.name}'."
            raise PipelineDeclarationError(msg)
        if step.name in RESERVED_INPUTS:
            msg = f"'{step.name}' is a reserved name and cannot be used as a step name."
            raise PipelineDeclarationError(msg)
        if step.parameter is not None and self._parameters.get(step.parameter.name) is not step.parameter:
            msg = f"Step '{step.name}' uses parameter '{step.parameter.name}', which is not declared."
            raise UnknownParameterError(msg)

        available = set(self._steps) | RESERVED_INPUTS
        injected = step.parameter.name if step.parameter is not None and step.func is not None else None
        if injected is not None:
            if injected in self._steps:
                msg = f"Step '{step.name}' cannot bind parameter '{injected}': a step with that name exists."
                raise PipelineDeclarationError(msg)
            available.add(injected)

        for func in step.implementations():
            missing = sorted(_required_input_names(func) - available)
            if missing:
                msg = (
                    f"Step '{step.name}' requires inputs {missing}, which are neither earlier steps"
                    f" nor one of {sorted(RESERVED_INPUTS)}."
                )
                raise PipelineDeclarationError(msg)

        self._steps[step.name] = step
        logger.debug(f"Added step '{step.name}' to multiverse '{self.name}'")
        return step

    def step[F: Callable[..., Any]](
        self,
        name: str | None = None,
        *,
        parameter: str | None = None,
        outcome: bool = False,
        mutable_data: bool = False,
        source: str | None = None,
    ) -> Callable[[F], F]:
        """Decorator to append a function to the pipeline.

        When `parameter` is given, the chosen option's value is passed to the
        function as the keyword argument named after the parameter.
        """

        def decorator(func: F) -> F:
            if name is None:
                if not hasattr(func, "__name__") or not isinstance(func.__name__, str):
                    msg = "Function must have a valid name."
                    raise TypeError(msg)
                step_name = func.__name__
            else:
                step_name = name
            self.add_step(
                Step(
                    name=step_name,
                    func=func,
                    parameter=self.parameter(parameter) if parameter is not None else None,
                    outcome=outcome,
                    mutable_data=mutable_data,
                    source=source,
                ),
            )
            return func

        return decorator

    def outcome[F: Callable[..., Any]](
        self,
        name: str | None = None,
        *,
        parameter: str | None = None,
        mutable_data: bool = False,
        source: str | None = None,
    ) -> Callable[[F], F]:
        """Decorator to append a step whose return value is one or more `Outcome`s."""
        return self.step(name, parameter=parameter, outcome=True, mutable_data=mutable_data, source=source)

    def branch(
        self,
        name: str,
        parameter: str,
        *,
        outcome: bool = False,
        mutable_data: bool = False,
        source: str | None = None,
    ) -> Step:
        """Append a step implemented by the chosen option of `parameter`.

        Every option of the parameter must have a callable value.
        """
        return self.add_step(
            Step(
                name=name,
                func=None,
                parameter=self.parameter(parameter),
                outcome=outcome,
                mutable_data=mutable_data,
                source=source,
            ),
        )

    def universes(self) -> list[Universe]:
        """Expand the declared parameters into universes."""
        return expand(self._parameters.values())

    def chosen_option(self, universe: Universe, parameter: str) -> Option:
        """Return the `Option` object a universe chose for `parameter`."""
        return self.parameter(parameter).option(universe[parameter])
