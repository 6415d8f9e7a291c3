"""Path resolution for scoped variables.

A path is the absolute dotted identifier of a variable: ``name`` for a global
variable when the global scope is flattened into the root, ``global.name``
otherwise, and ``scope.name`` for everything else. Only one level of nesting
exists below the root.
"""

import re
from dataclasses import dataclass
from typing import ClassVar, Self

GLOBAL_SCOPE = "global"
UP_MARKER = "../"
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")

_REPEATED_DOTS = re.compile(r"\.{2,}")


def is_identifier(value: str) -> bool:
    """Check whether a name or scope is a valid identifier."""
    return isinstance(value, str) and IDENTIFIER_PATTERN.match(value) is not None


@dataclass(slots=True, frozen=True)
class VarPath:
    """An absolute path split into its scope segment and name.

    ``scope`` is None for a path that lives directly at the root.
    """

    scope: str | None
    name: str

    SEPARATOR: ClassVar[str] = "."

    def __str__(self) -> str:
        if self.scope is None:
            return self.name
        return f"{self.scope}{self.SEPARATOR}{self.name}"

    @property
    def is_root_level(self) -> bool:
        return self.scope is None

    @classmethod
    def parse(cls, path_str: str) -> Self:
        """Split an absolute path on its first dot.

        Raises:
            ValueError: If the path is empty or has more than two segments.

        """
        s = path_str.strip()
        if not s:
            msg = "Path must not be empty."
            raise ValueError(msg)
        scope, sep, name = s.partition(cls.SEPARATOR)
        if not sep:
            return cls(scope=None, name=scope)
        if cls.SEPARATOR in name:
            msg = f"Paths support a single scope level. Got: {path_str}"
            raise ValueError(msg)
        return cls(scope=scope, name=name)


def get_path(name: str, scope: str | None = None, *, global_root: bool = True) -> str:
    """Get the absolute path of a variable from its name and scope.

    Args:
        name: The variable name. Inside a non-global scope it may start with
            ``../`` to address the global scope (or a sibling scope when the
            remainder is ``scope.name``).
        scope: The scope of the variable. Defaults to the global scope.
        global_root: True if global variables live at the root of the path
            namespace, False if they need an explicit ``global.`` prefix.

    Returns:
        The absolute path.

    Examples:
        >>> get_path("var", "scope")
        'scope.var'
        >>> get_path("../var", "scope", global_root=False)
        'global.var'

    """
    if not scope:
        scope = GLOBAL_SCOPE

    if scope != GLOBAL_SCOPE:
        if name.startswith(UP_MARKER):
            name = name.removeprefix(UP_MARKER)
            # Flattened global scope, or the name already carries its own scope
            if global_root or VarPath.SEPARATOR in name:
                return name
            return f"{GLOBAL_SCOPE}.{name}"
        return f"{scope}.{name}"

    if global_root:
        return name
    return f"{GLOBAL_SCOPE}.{name}"


def normalize_path(path: str, scope: str | None = None, *, global_root: bool = True) -> str:
    """Resolve a reference string against the scope it appears in.

    Args:
        path: A bare name, an explicit ``scope.name`` or either of those
            prefixed with ``../``.
        scope: The scope holding the reference. Defaults to the global scope.
        global_root: See `get_path`.

    Returns:
        The absolute path the reference points at.

    """
    if not scope:
        scope = GLOBAL_SCOPE

    s = path.strip()
    went_up = False
    if scope != GLOBAL_SCOPE and s.startswith(UP_MARKER):
        s = s.removeprefix(UP_MARKER)
        went_up = True

    s = _REPEATED_DOTS.sub(VarPath.SEPARATOR, s).strip(VarPath.SEPARATOR)
    segments = s.split(VarPath.SEPARATOR)

    if len(segments) == 1:
        if scope == GLOBAL_SCOPE or went_up:
            return get_path(segments[0], GLOBAL_SCOPE, global_root=global_root)
        return f"{scope}.{segments[0]}"

    # Anything between the first and last segment is not a supported level
    first, last = segments[0], segments[-1]
    if first == GLOBAL_SCOPE:
        return get_path(last, GLOBAL_SCOPE, global_root=global_root)
    return f"{first}.{last}"


def split_path(path: str) -> tuple[str | None, str]:
    """Split an absolute path into ``(scope, name)``; scope is None at the root."""
    parsed = VarPath.parse(path)
    return parsed.scope, parsed.name
