"""Path arithmetic for slash-delimited node paths.

All functions assume a valid absolute path (see ``validators.validate_path``).
"""

from __future__ import annotations

ROOT = "/"


def is_root(path: str) -> bool:
    return path == ROOT


def get_parent(path: str) -> str | None:
    """Return the parent of *path*, or ``None`` for the root path."""
    if path == ROOT:
        return None
    index = path.rfind("/")
    if index == 0:
        return ROOT
    return path[:index]


def child_path(parent: str, name: str) -> str:
    """Join a child name onto *parent*."""
    if parent == ROOT:
        return ROOT + name
    return f"{parent}/{name}"


def ancestors(path: str) -> list[str]:
    """Return the proper ancestors of *path*, top-down, excluding the root.

    >>> ancestors("/a/b/c")
    ['/a', '/a/b']
    """
    result = []
    index = path.find("/", 1)
    while index != -1:
        result.append(path[:index])
        index = path.find("/", index + 1)
    return result


