"""Hierarchical column projection over data payloads.

Columns are dot-separated paths into the "data" sub-document
("a.b.c" selects data["a"]["b"]["c"]). Requested paths are merged into a
tree; when one path is a prefix of another the shorter one wins, because
it already selects the whole subtree.
"""

from collections.abc import Iterable
from typing import Any

from dsu.core.errors import ValidationError

COLUMN_SEPARATOR = "."

# Document stores reserve field names starting with this for operators.
_OPERATOR_PREFIX = "$"

# A tree node maps a field name to its children, or to None for a leaf
# that selects the whole subtree.
_Tree = dict[str, "_Tree | None"]


class ColumnList:
    """A normalized set of projection paths.

    Attributes:
        tree: Nested mapping of path segments; leaves are None.
    """

    def __init__(self, columns: Iterable[str] | None = None) -> None:
        self.tree: _Tree = {}
        for column in columns or ():
            self.add(column)

    def add(self, column: str | None) -> None:
        """Merge one dot-separated path into the tree.

        Raises:
            ValidationError: If the path is missing or blank, or a segment is
                empty or starts with "$".
        """
        if column is None or not column.strip():
            raise ValidationError("A column is null or empty.")
        segments = column.strip().split(COLUMN_SEPARATOR)
        if any(not segment for segment in segments):
            raise ValidationError(f"The column '{column}' has an empty segment.")
        if any(segment.startswith(_OPERATOR_PREFIX) for segment in segments):
            raise ValidationError(
                f"The column '{column}' has a segment starting with '{_OPERATOR_PREFIX}'."
            )

        node = self.tree
        for segment in segments[:-1]:
            if segment in node and node[segment] is None:
                # A shorter path already selects everything below here.
                return
            node = node.setdefault(segment, {})
        node[segments[-1]] = None

    def __bool__(self) -> bool:
        return bool(self.tree)

    def to_list(self) -> list[str]:
        """Flatten the tree back into sorted, non-overlapping paths."""
        paths: list[str] = []

        def walk(node: _Tree, prefix: str) -> None:
            for name in sorted(node):
                path = f"{prefix}{COLUMN_SEPARATOR}{name}" if prefix else name
                child = node[name]
                if child is None:
                    paths.append(path)
                else:
                    walk(child, path)

        walk(self.tree, "")
        return paths

    def project(self, value: Any) -> Any:
        """Apply the projection to a decoded payload.

        Mirrors document-store projection rules: missing fields are omitted,
        scalars cannot be descended into, and arrays are projected element
        by element with scalar elements dropped.
        """
        if not self.tree:
            return value
        projected = _project(value, self.tree)
        return {} if projected is None else projected


def _project(value: Any, tree: _Tree) -> Any:
    if isinstance(value, dict):
        result = {}
        for key, child in value.items():
            if key not in tree:
                continue
            subtree = tree[key]
            if subtree is None:
                result[key] = child
            elif isinstance(child, (dict, list)):
                result[key] = _project(child, subtree)
        return result
    if isinstance(value, list):
        return [
            _project(element, tree)
            for element in value
            if isinstance(element, (dict, list))
        ]
    return None
