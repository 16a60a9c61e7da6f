"""
Tree address utilities.

Tree addresses are JSON-pointer style (``/a/0/b``). Field references are the
human-facing form: numeric steps collapse into a ``[]`` marker on the
preceding step and the rest is joined with dots (``a[].b``).
"""
from typing import List, TypeVar

T = TypeVar('T')


def identity(value: T) -> T:
    return value


def path_to_steps(path: str) -> List[str]:
    """Split a tree address into its steps.

    >>> path_to_steps("/a/0/b")
    ['a', '0', 'b']
    >>> path_to_steps("/")
    []
    """
    if path.startswith("/"):
        path = path[1:]
    if path == "":
        return []
    return path.split("/")


def steps_to_path(steps: List[str]) -> str:
    """Join steps into a tree address, always with a leading slash."""
    result = "/".join(str(step) for step in steps)
    if not result.startswith("/"):
        return "/" + result
    return result


def join_path(path: str, step) -> str:
    """Append one step to a tree address (root is ``""`` or ``"/"``)."""
    if path in ("", "/"):
        return f"/{step}"
    return f"{path}/{step}"


def is_int(step: str) -> bool:
    """True if a path step addresses a list index."""
    if step.startswith("-"):
        step = step[1:]
    return step.isdigit()


def path_to_fieldref(path: str) -> str:
    """Convert a tree address to a field reference.

    >>> path_to_fieldref("/a/0/b")
    'a[].b'
    >>> path_to_fieldref("/a/0/b/3/c")
    'a[].b[].c'
    """
    result: List[str] = []
    for step in path_to_steps(path):
        if is_int(step) and result:
            result[-1] = result[-1] + "[]"
        else:
            result.append(step)
    return ".".join(result)


def parent_path(path: str) -> str:
    """Tree address of the container holding ``path`` (root for top-level)."""
    return steps_to_path(path_to_steps(path)[:-1])
