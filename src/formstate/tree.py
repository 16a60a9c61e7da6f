"""
Data tree access and patching.

The accessor tree never mutates records directly: every write goes through
``apply_patch`` so that structural changes can be observed. Records are
dataclass instances (or plain dicts), lists are Python lists.

Only three patch kinds exist:
- ``add``: insert into a list at an index (index == length appends), or set a record key
- ``remove``: delete a list entry
- ``replace``: overwrite a list entry or record key
"""
import inspect
import logging
import weakref
from typing import Any, Callable, Dict, Iterable, List

from formstate.errors import ConfigurationError
from formstate.paths import is_int, path_to_steps

logger = logging.getLogger(__name__)

Patch = Dict[str, Any]
PatchListener = Callable[[Patch], None]

PATCH_OPS = ("add", "remove", "replace")


class _StrongRef:
    """Reference-like holder for plain function listeners."""

    def __init__(self, callback: PatchListener):
        self._callback = callback

    def __call__(self) -> PatchListener:
        return self._callback


# Listener refs keyed by id(root) - dataclass instances are not reliably hashable
_patch_listeners: Dict[int, List[Callable[[], PatchListener]]] = {}


def _get_step(obj: Any, step: str) -> Any:
    if isinstance(obj, list):
        if not is_int(step):
            raise ConfigurationError(f"Expected list index, got {step!r}")
        index = int(step)
        if index < 0 or index >= len(obj):
            raise ConfigurationError(f"List index {index} out of range (length {len(obj)})")
        return obj[index]
    if isinstance(obj, dict):
        if step not in obj:
            raise ConfigurationError(f"No key {step!r} in record")
        return obj[step]
    if not hasattr(obj, step):
        raise ConfigurationError(f"{type(obj).__name__} has no field {step!r}")
    return getattr(obj, step)


def _set_step(obj: Any, step: str, value: Any) -> None:
    if isinstance(obj, list):
        obj[int(step)] = value
    elif isinstance(obj, dict):
        obj[step] = value
    else:
        setattr(obj, step, value)


def resolve_steps(root: Any, steps: Iterable[str]) -> Any:
    """Read the node addressed by ``steps`` below ``root``."""
    node = root
    for step in steps:
        node = _get_step(node, step)
    return node


def resolve_path(root: Any, path: str) -> Any:
    """Read the node at JSON-pointer ``path`` below ``root``.

    Raises:
        ConfigurationError: If any step of the path cannot be resolved.
    """
    return resolve_steps(root, path_to_steps(path))


def on_patch(root: Any, callback: PatchListener) -> None:
    """Subscribe to every patch applied below ``root``.

    Bound methods are held weakly: a subscriber that is garbage collected
    without calling ``off_patch`` drops out of the registry on its own.
    """
    root_id = id(root)
    listeners = _patch_listeners.setdefault(root_id, [])
    if any(ref() == callback for ref in listeners):
        return
    if inspect.ismethod(callback):
        listeners.append(weakref.WeakMethod(callback, lambda ref: _discard_ref(root_id, ref)))
    else:
        listeners.append(_StrongRef(callback))


def off_patch(root: Any, callback: PatchListener) -> None:
    """Unsubscribe a patch listener."""
    listeners = _patch_listeners.get(id(root), [])
    for ref in listeners:
        if ref() == callback:
            _discard_ref(id(root), ref)
            return


def _discard_ref(root_id: int, ref) -> None:
    listeners = _patch_listeners.get(root_id)
    if listeners is None:
        return
    listeners[:] = [existing for existing in listeners if existing is not ref]
    if not listeners:
        del _patch_listeners[root_id]


def _fire_patch_listeners(root: Any, patch: Patch) -> None:
    for ref in list(_patch_listeners.get(id(root), [])):
        callback = ref()
        if callback is None:
            continue
        try:
            callback(patch)
        except Exception as e:
            logger.warning(f"Error in patch listener for {patch['path']}: {e}")


def _apply_single(root: Any, patch: Patch) -> None:
    op = patch.get("op")
    if op not in PATCH_OPS:
        raise ConfigurationError(f"Unknown patch op {op!r}, expected one of {PATCH_OPS}")
    steps = path_to_steps(patch["path"])
    if not steps:
        raise ConfigurationError("Cannot patch the root node itself")
    container = resolve_steps(root, steps[:-1])
    last = steps[-1]

    if op == "add":
        if isinstance(container, list):
            index = int(last)
            if index < 0 or index > len(container):
                raise ConfigurationError(f"Cannot add at index {index} (length {len(container)})")
            container.insert(index, patch["value"])
        else:
            _set_step(container, last, patch["value"])
    elif op == "remove":
        if not isinstance(container, list):
            raise ConfigurationError(f"Can only remove list entries, not {patch['path']}")
        _get_step(container, last)
        del container[int(last)]
    else:
        # replace requires an existing target
        _get_step(container, last)
        _set_step(container, last, patch["value"])


def apply_patch(root: Any, patches: Iterable[Patch]) -> None:
    """Apply patches in order, notifying listeners after each one.

    Args:
        root: Root record of the data tree
        patches: Dicts with ``op``, ``path`` and (for add/replace) ``value``

    Raises:
        ConfigurationError: On an unknown op or an unresolvable path.
    """
    for patch in patches:
        _apply_single(root, patch)
        logger.debug(f"Applied patch {patch['op']} {patch['path']}")
        _fire_patch_listeners(root, patch)
