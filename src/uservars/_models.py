"""Declarations of user variables.

Declarations are the JSON shapes callers author by hand. They are decoded
into frozen pydantic models at the store boundary so that evaluation can
dispatch on closed types instead of probing fields.
"""

from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Discriminator,
    Field,
    StringConstraints,
    Tag,
    TypeAdapter,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel

from ._enums import BasicType, Comparison, Priority, VarType
from ._errors import InvalidVariableError
from ._path import GLOBAL_SCOPE, IDENTIFIER_PATTERN, get_path

Identifier = Annotated[str, StringConstraints(pattern=IDENTIFIER_PATTERN.pattern)]

_REFERENCE_MARKERS = frozenset({"ref", "reference", "var"})


class _Declaration(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# Values
# =============================================================================


class LiteralValue(_Declaration):
    """A string used verbatim."""

    kind: Literal["literal"] = "literal"
    value: str


class ReferenceValue(_Declaration):
    """A reference string resolved against the scope it is declared in."""

    kind: Literal["reference"] = "reference"
    value: str


class InlineExpression(_Declaration):
    """An arithmetic fragment carrying its own local bindings."""

    kind: Literal["expression"] = "expression"
    value: str
    vars: dict[str, "Value"] = Field(default_factory=dict)
    functions: list["Value"] = Field(default_factory=list)


def _coerce_value(raw: Any) -> Any:
    """Normalise the historical value shapes into a ``kind``-tagged mapping.

    - ``"text"`` is a literal
    - ``{"value": ..., "varType": "ref" | "reference" | "literal" | "expression"}``
    - ``{"value": ..., "reference": bool}``
    - ``{"value": ...}`` without a marker is a reference
    """
    if isinstance(raw, str):
        return {"kind": "literal", "value": raw}
    if not isinstance(raw, Mapping) or "kind" in raw:
        return raw

    data = dict(raw)
    marker = data.pop("varType", data.pop("var_type", None))
    if marker in _REFERENCE_MARKERS:
        data["kind"] = "reference"
    elif marker in ("literal", "expression"):
        data["kind"] = marker
    elif marker is not None:
        # Let the discriminator report the unknown tag
        data["kind"] = marker
    elif "reference" in data:
        data["kind"] = "reference" if data["reference"] else "literal"
    elif "basicType" in data:
        data["kind"] = "reference" if data["basicType"] == BasicType.VAR else "literal"
    else:
        data["kind"] = "reference"
    data.pop("reference", None)
    data.pop("basicType", None)
    return data


Value = Annotated[
    LiteralValue | ReferenceValue | InlineExpression,
    Discriminator("kind"),
    BeforeValidator(_coerce_value),
]

InlineExpression.model_rebuild()


# =============================================================================
# Variables
# =============================================================================


class _VariableBase(_Declaration):
    name: Identifier
    scope: Identifier = GLOBAL_SCOPE

    def path(self, *, global_root: bool = True) -> str:
        """Get the absolute path of this variable."""
        return get_path(self.name, self.scope, global_root=global_root)


class BasicVariable(_VariableBase):
    """A single value: a literal, a reference or an inline expression.

    A bare string ``value`` is a literal unless ``basicType`` is ``"var"``.
    """

    var_type: Literal["basic"] = "basic"
    basic_type: BasicType | None = None
    value: Value

    @model_validator(mode="before")
    @classmethod
    def _apply_basic_type(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        basic_type = data.get("basicType", data.get("basic_type"))
        if basic_type == BasicType.VAR and isinstance(data.get("value"), str):
            return {**data, "value": {"kind": "reference", "value": data["value"]}}
        return data


class ListVariable(_VariableBase):
    """An ordered sequence of values; referenced lists are spliced in."""

    var_type: Literal["list"] = "list"
    value: list[Value]


class Condition(_Declaration):
    """One comparison of a table row; the right operand may be an inline list."""

    val1: Value
    comparison: Comparison
    val2: Value | list[Value]


class TableRow(_Declaration):
    """A candidate output guarded by a conjunction of conditions."""

    conditions: list[Condition] = Field(default_factory=list)
    output: Value


class TableVariable(_VariableBase):
    """A decision table.

    Evaluates to the output of the first (or last, per ``priority``) row whose
    conditions all hold, else to ``default``.
    """

    var_type: Literal["table"] = "table"
    value: list[TableRow]
    default: Value
    priority: Priority = Priority.FIRST


class ExpressionVariable(_VariableBase):
    """An arithmetic expression evaluated over other variables.

    ``functions`` entries are function definitions (``"f(x) = x + 2"``)
    prepended to the expression text; ``vars`` binds the free names of the
    expression.
    """

    var_type: Literal["expression"] = "expression"
    value: Value
    vars: dict[str, Value] = Field(default_factory=dict)
    functions: list[Value] = Field(default_factory=list)


class UnknownVariable(_VariableBase):
    """A declaration whose ``varType`` this version does not know."""

    model_config = ConfigDict(extra="allow")

    var_type: str
    value: Any = None


_KNOWN_VAR_TYPES = frozenset(VarType)


def _variable_tag(data: Any) -> str | None:
    if isinstance(data, Mapping):
        var_type = data.get("varType", data.get("var_type"))
    else:
        var_type = getattr(data, "var_type", None)
    if var_type is None:
        return None
    return var_type if var_type in _KNOWN_VAR_TYPES else "unknown"


Variable = Annotated[
    Annotated[BasicVariable, Tag("basic")]
    | Annotated[ListVariable, Tag("list")]
    | Annotated[TableVariable, Tag("table")]
    | Annotated[ExpressionVariable, Tag("expression")]
    | Annotated[UnknownVariable, Tag("unknown")],
    Discriminator(_variable_tag),
]

VariableModel = BasicVariable | ListVariable | TableVariable | ExpressionVariable | UnknownVariable

_variable_adapter: TypeAdapter[VariableModel] = TypeAdapter(Variable)
_variable_list_adapter: TypeAdapter[list[VariableModel]] = TypeAdapter(list[Variable])


def parse_variable(data: Any) -> VariableModel:
    """Decode one variable declaration.

    Args:
        data: A declaration model (returned unchanged) or its JSON-shaped mapping.

    Returns:
        The decoded declaration.

    Raises:
        InvalidVariableError: If the declaration is malformed.

    """
    if isinstance(data, _VariableBase):
        return data
    try:
        return _variable_adapter.validate_python(data)
    except ValidationError as e:
        msg = f"Invalid variable declaration: {e}"
        raise InvalidVariableError(msg) from e


def parse_variables_json(text: str | bytes) -> list[VariableModel]:
    """Decode a JSON array of variable declarations.

    Raises:
        InvalidVariableError: If the text is not valid JSON or any declaration is malformed.

    """
    try:
        return _variable_list_adapter.validate_json(text)
    except ValidationError as e:
        msg = f"Invalid variable declarations: {e}"
        raise InvalidVariableError(msg) from e
