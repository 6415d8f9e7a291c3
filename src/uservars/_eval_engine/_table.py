"""Decision table evaluation.

Two entry points share the same semantics:

- `evaluate_table` scans rows in priority order and stops at the first row
  whose conditions all pass (cheap, used for plain reads);
- `trace_table` resolves every operand of every row and reports which row won
  and why, for callers that need to explain the result.

Operands are resolved by a callback so this module stays independent of the
store and the cache.
"""

from collections import Counter
from collections.abc import Callable, Iterator, Sequence
from dataclasses import asdict, dataclass
from typing import Any

from uservars._enums import Comparison, Priority, is_sentinel
from uservars._models import Condition, TableRow, TableVariable, Value

type EvalValue = str | list[str]


@dataclass(frozen=True, slots=True)
class ResolvedOperand:
    """A resolved value together with where it came from.

    Attributes:
        value: The resolved value.
        reference: Absolute path of the referenced variable, or ``""`` when the
            value was a literal.

    """

    value: EvalValue
    reference: str = ""


type Resolver = Callable[[Value | list[Value]], ResolvedOperand]


@dataclass(frozen=True, slots=True)
class ConditionTrace:
    left: ResolvedOperand
    comparison: Comparison
    right: ResolvedOperand
    passed: bool


@dataclass(frozen=True, slots=True)
class RowTrace:
    index: int
    conditions: tuple[ConditionTrace, ...]
    output: ResolvedOperand
    passed: bool


@dataclass(frozen=True, slots=True)
class TableTrace:
    """Fully annotated evaluation of a table.

    Attributes:
        output: The value the table evaluates to.
        matched_row: Index of the row that produced ``output``, or None when
            the default was used.
        rows: Every row, in declaration order, with its resolved operands.
        default: The resolved default.
        priority: Scan order that picked ``matched_row``.

    """

    output: EvalValue
    matched_row: int | None
    rows: tuple[RowTrace, ...]
    default: ResolvedOperand
    priority: Priority

    @property
    def used_default(self) -> bool:
        return self.matched_row is None

    def to_dict(self) -> dict[str, Any]:
        """Convert to plain dicts and lists, ready for JSON."""
        return asdict(self)


def _as_number(value: EvalValue) -> float | None:
    if isinstance(value, list):
        return float(len(value))
    try:
        return float(value)
    except ValueError:
        return None


def compare(left: EvalValue, comparison: Comparison, right: EvalValue) -> bool:
    """Apply a table comparison to two resolved operands.

    - ``eq``: string equality; two lists are equal when they hold the same
      elements the same number of times, in any order.
    - ``lt`` / ``gt``: numeric; strings are parsed as floats and lists count
      their elements.
    - ``in``: the right operand must be a list; a list on the left must be
      contained element by element.

    Operands of the wrong shape, and sentinels, make the condition fail.
    """
    if is_sentinel(left) or is_sentinel(right):
        return False

    match comparison:
        case Comparison.EQ:
            if isinstance(left, list) and isinstance(right, list):
                return Counter(left) == Counter(right)
            if isinstance(left, list) or isinstance(right, list):
                return False
            return left == right
        case Comparison.LT | Comparison.GT:
            lhs, rhs = _as_number(left), _as_number(right)
            if lhs is None or rhs is None:
                return False
            return lhs < rhs if comparison == Comparison.LT else lhs > rhs
        case Comparison.IN:
            if not isinstance(right, list):
                return False
            if isinstance(left, list):
                return all(item in right for item in left)
            return left in right
        case _:
            return False


def scan_order(rows: Sequence[TableRow], priority: Priority) -> Iterator[tuple[int, TableRow]]:
    """Yield ``(index, row)`` in the order rows compete for the output."""
    indexed = list(enumerate(rows))
    if priority == Priority.LAST:
        indexed.reverse()
    return iter(indexed)


def _condition_holds(condition: Condition, resolve: Resolver) -> bool:
    left = resolve(condition.val1)
    right = resolve(condition.val2)
    return compare(left.value, condition.comparison, right.value)


def evaluate_table(table: TableVariable, resolve: Resolver) -> EvalValue:
    """Evaluate a table to its output.

    Args:
        table: The table declaration.
        resolve: Resolves a value (or inline list of values) of the table.

    Returns:
        The output of the winning row, or the resolved default.

    """
    for _index, row in scan_order(table.value, table.priority):
        if all(_condition_holds(condition, resolve) for condition in row.conditions):
            return resolve(row.output).value
    return resolve(table.default).value


def trace_table(table: TableVariable, resolve: Resolver) -> TableTrace:
    """Evaluate a table, resolving every operand of every row."""
    rows: list[RowTrace] = []
    for index, row in enumerate(table.value):
        conditions = []
        for condition in row.conditions:
            left = resolve(condition.val1)
            right = resolve(condition.val2)
            conditions.append(
                ConditionTrace(
                    left=left,
                    comparison=condition.comparison,
                    right=right,
                    passed=compare(left.value, condition.comparison, right.value),
                ),
            )
        rows.append(
            RowTrace(
                index=index,
                conditions=tuple(conditions),
                output=resolve(row.output),
                passed=all(c.passed for c in conditions),
            ),
        )

    default = resolve(table.default)
    ordered = reversed(rows) if table.priority == Priority.LAST else iter(rows)
    matched = next((row for row in ordered if row.passed), None)

    return TableTrace(
        output=matched.output.value if matched is not None else default.value,
        matched_row=matched.index if matched is not None else None,
        rows=tuple(rows),
        default=default,
        priority=table.priority,
    )
