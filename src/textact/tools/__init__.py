"""
Tool registry for textact.

A tool is a named capability with a pydantic model describing its arguments and a function that
turns those arguments into a string.  Tools are collected in a :class:`ToolRegistry` once at
start-up and looked up by name when the model asks for them.
"""

import asyncio
import inspect
import logging
from dataclasses import (
    dataclass,
    field,
)
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Type,
    TypedDict,
    Union,
)

from pydantic import (
    BaseModel,
    ValidationError,
)

logger = logging.getLogger(__name__)

ToolFunc = Callable[..., Union[str, Awaitable[str]]]


class ParameterInfo(TypedDict):
    """
    Information about a tool parameter.
    """

    type: str
    description: str
    required: bool


class ToolSchema(TypedDict):
    """
    Schema for a tool function
    """

    description: str
    parameters: Mapping[str, ParameterInfo]


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "args"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


@dataclass(frozen=True)
class Tool:
    """
    A single invocable capability.

    ``args_model`` doubles as the declared input schema and as the validator applied before
    ``func`` runs.  Invalid input never raises: :meth:`execute` returns an error string instead.
    """

    name: str
    description: str
    args_model: Type[BaseModel]
    func: ToolFunc
    progress: Optional[str] = None  # str.format template over the call arguments

    @property
    def input_schema(self) -> Dict[str, ParameterInfo]:
        """Parameter name -> type/description/required, derived from ``args_model``."""
        schema = self.args_model.model_json_schema()
        required = set(schema.get("required", []))
        params: Dict[str, ParameterInfo] = {}
        for param_name, info in schema.get("properties", {}).items():
            if "enum" in info:
                param_type = " | ".join(str(v) for v in info["enum"])
            else:
                param_type = info.get("type", "any")
            params[param_name] = ParameterInfo(
                type=param_type,
                description=info.get("description", ""),
                required=param_name in required,
            )
        return params

    async def execute(self, args: Mapping[str, Any]) -> str:
        """Validate *args* and run the tool."""
        try:
            parsed = self.args_model.model_validate(dict(args))
        except ValidationError as exc:
            return f"Invalid arguments for tool '{self.name}': {_format_validation_error(exc)}"

        kwargs = parsed.model_dump()
        if inspect.iscoroutinefunction(self.func):
            result = await self.func(**kwargs)
        else:
            # Blocking tools must not stall the event loop shared by every session.
            result = await asyncio.to_thread(self.func, **kwargs)
        return str(result)


@dataclass
class ToolRegistry:
    """Name -> :class:`Tool` mapping, populated once when the process starts."""

    _tools: Dict[str, Tool] = field(default_factory=dict)

    def register(self, tool: Tool) -> Tool:
        """
        Add *tool* to the registry.

        Raises
        ------
        ValueError
            If a tool with the same name is already registered.
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered.")
        logger.debug("Registering tool '%s'", tool.name)
        self._tools[tool.name] = tool
        return tool

    def tool(
        self,
        name: str,
        args_model: Type[BaseModel],
        description: str | None = None,
        progress: str | None = None,
    ) -> Callable[[ToolFunc], ToolFunc]:
        """
        Register the decorated function as a tool called *name*.

            @registry.tool("echo", EchoArgs)
            async def echo(text: str) -> str:
                \"\"\"Echo the input text back to the caller.\"\"\"
                return text

        The function's docstring is used as the description unless *description* is given.
        """

        def wrapper(fn: ToolFunc) -> ToolFunc:
            self.register(
                Tool(
                    name=name,
                    description=description or inspect.getdoc(fn) or "",
                    args_model=args_model,
                    func=fn,
                    progress=progress,
                )
            )
            return fn

        return wrapper

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def schemas(self) -> Dict[str, ToolSchema]:
        """Description and parameters of every registered tool."""
        return {
            name: {"description": t.description, "parameters": t.input_schema}
            for name, t in self._tools.items()
        }

    @property
    def fingerprint(self) -> Tuple[Tuple[str, str], ...]:
        """Changes whenever a tool is added or its description differs."""
        return tuple((name, t.description) for name, t in self._tools.items())

    def describe_call(self, name: str, args: Mapping[str, Any]) -> str:
        """Human-readable progress message for a pending call."""
        tool = self._tools.get(name)
        if tool is not None and tool.progress:
            try:
                return tool.progress.format(**args)
            except (KeyError, IndexError, ValueError):
                pass
        return f"Executing {name}..."

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
