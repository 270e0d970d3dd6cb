"""Local function tools.

A plain Python callable becomes a tool by building an explicit arguments
model once, at registration time, from its signature (names, annotations,
defaults). Model-supplied JSON is validated against that model and bound to
positional/keyword arguments before the call.

    @function_tool(name="GetWeatherTool", description="get the weather")
    def get_weather(city: Annotated[str, Field(description="city name")]) -> str:
        ...

    descriptor = tool_from_callable(get_weather)
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Callable, TypeVar, get_type_hints

from pydantic import BaseModel, ConfigDict, PydanticUserError, create_model

from tornado_agents.core.errors import ToolRegistrationError
from tornado_agents.core.types import LocalBinding, ToolDescriptor, ToolParameter

from .name_mapping import to_model_tool_name
from .tool_specs import parameters_from_model

F = TypeVar("F", bound=Callable[..., Any])

_TOOL_OPTIONS_ATTR = "__tornado_tool__"


@dataclass(frozen=True, slots=True)
class ToolOptions:
    """Attribute-style metadata overriding a tool's name/description."""

    name: str | None = None
    description: str | None = None


def function_tool(fn: F | None = None, *, name: str | None = None, description: str | None = None) -> Any:
    """Mark a callable with a custom tool name and/or description.

    Usable bare (`@function_tool`) or with options
    (`@function_tool(name="Search")`).
    """

    def wrap(f: F) -> F:
        setattr(f, _TOOL_OPTIONS_ATTR, ToolOptions(name=name, description=description))
        return f

    if fn is not None:
        return wrap(fn)
    return wrap


def tool_options(fn: Callable[..., Any]) -> ToolOptions:
    opts = getattr(fn, _TOOL_OPTIONS_ATTR, None)
    return opts if isinstance(opts, ToolOptions) else ToolOptions()


def _resolved_hints(fn: Callable[..., Any]) -> dict[str, Any]:
    target = fn
    if not (inspect.isfunction(fn) or inspect.ismethod(fn)):
        target = getattr(fn, "__call__", fn)
    try:
        return get_type_hints(target, include_extras=True)
    except (NameError, TypeError):
        return {}


def build_arguments_model(
    fn: Callable[..., Any], *, model_name: str
) -> tuple[type[BaseModel], tuple[ToolParameter, ...], bool]:
    """Build (arguments model, parameters, accepts **kwargs) for a callable."""

    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError) as e:
        raise ToolRegistrationError(f"cannot inspect signature of tool {model_name!r}: {e}") from e

    hints = _resolved_hints(fn)
    fields: dict[str, Any] = {}
    params: list[ToolParameter] = []
    accepts_var_kwargs = False

    for pname, param in sig.parameters.items():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            continue
        if param.kind is inspect.Parameter.VAR_KEYWORD:
            accepts_var_kwargs = True
            continue
        if pname.startswith("_"):
            raise ToolRegistrationError(f"tool {model_name!r}: parameter names may not start with '_' ({pname!r})")

        annotation = hints.get(pname, param.annotation)
        if annotation is inspect.Parameter.empty or isinstance(annotation, str):
            annotation = Any

        required = param.default is inspect.Parameter.empty
        default = None if required else param.default
        fields[pname] = (annotation, ... if required else default)
        params.append(
            ToolParameter(
                name=pname,
                annotation=annotation,
                required=required,
                default=default,
                positional_only=param.kind is inspect.Parameter.POSITIONAL_ONLY,
            )
        )

    config = ConfigDict(
        extra="allow" if accepts_var_kwargs else "ignore",
        arbitrary_types_allowed=True,
        protected_namespaces=(),
    )
    try:
        model = create_model(f"{model_name}Arguments", __config__=config, **fields)
    except (PydanticUserError, TypeError, NameError) as e:
        raise ToolRegistrationError(f"cannot build an arguments model for tool {model_name!r}: {e}") from e

    return model, tuple(params), accepts_var_kwargs


def bind_arguments(binding: LocalBinding, arguments: dict[str, Any]) -> tuple[list[Any], dict[str, Any]]:
    """Validate a decoded argument mapping and split it into call arguments.

    Raises pydantic.ValidationError for missing required or mistyped values.
    """

    validated = binding.arguments_model.model_validate(arguments)
    values = dict(validated)

    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    known = set()
    for p in binding.parameters:
        known.add(p.name)
        if p.positional_only:
            args.append(values[p.name])
        else:
            kwargs[p.name] = values[p.name]

    if binding.accepts_var_kwargs:
        for k, v in values.items():
            if k not in known:
                kwargs[k] = v

    return args, kwargs


def _default_description(fn: Callable[..., Any]) -> str:
    doc = inspect.getdoc(fn)
    return doc.strip() if doc else ""


def tool_from_callable(
    fn: Callable[..., Any],
    *,
    name: str | None = None,
    description: str | None = None,
) -> ToolDescriptor:
    """Build a local ToolDescriptor for a callable.

    Precedence for name/description: explicit arguments, then
    `@function_tool` metadata, then `__name__` / docstring.
    """

    if not callable(fn):
        raise ToolRegistrationError(f"tool must be callable, got {type(fn).__name__}")

    opts = tool_options(fn)
    raw_name = name or opts.name or getattr(fn, "__name__", None)
    if not raw_name or raw_name == "<lambda>":
        raise ToolRegistrationError("tool name is required for lambdas and anonymous callables")

    try:
        tool_name = to_model_tool_name(raw_name)
    except ValueError as e:
        raise ToolRegistrationError(str(e)) from e

    desc = description if description is not None else opts.description
    if desc is None:
        desc = _default_description(fn)

    model, params, var_kwargs = build_arguments_model(fn, model_name=tool_name)
    binding = LocalBinding(handler=fn, arguments_model=model, parameters=params, accepts_var_kwargs=var_kwargs)

    return ToolDescriptor(
        name=tool_name,
        description=desc,
        parameters=parameters_from_model(model),
        binding=binding,
    )
