"""
Input-binding strategies.

A binding strategy turns an accessor into the props an input widget needs:
the current raw under the right key, plus an ``on_change`` handler that
feeds new raw input back through ``set_raw``. Converters declare which
strategy suits them; a Field may override it.
"""
from typing import Any, Callable, Dict

Controlled = Callable[[Any], Dict[str, Any]]


def value(accessor) -> Dict[str, Any]:
    """Text-like inputs: raw is exposed as ``value``."""
    return {"value": accessor.raw, "on_change": accessor.set_raw}


def checked(accessor) -> Dict[str, Any]:
    """Checkbox inputs: raw is exposed as ``checked``."""
    return {"checked": accessor.raw, "on_change": accessor.set_raw}


# Public name (controlled.object); nothing in this module uses the builtin
def object(accessor) -> Dict[str, Any]:
    """Selection of whole records: raw is the record itself."""
    return {"value": accessor.raw, "on_change": accessor.set_raw}
