"""
Draft record types for editing.

A draft type is a dataclass rebuilt from a record type so that every field
can be left empty while the user is still filling in the form:

- ``str`` fields stay ``str`` (the empty string already means "nothing entered")
- nested record fields become ``Optional[DraftRecord] = None``
- ``List[X]`` / ``Dict[K, X]`` keep their container and draft their element type
- unions that already admit ``None`` are left untouched
- everything else becomes ``Optional[X] = None``

The result can be instantiated with no arguments.
"""
import dataclasses
import logging
import types
import typing
from dataclasses import MISSING, field, fields, is_dataclass, make_dataclass
from typing import Any, Dict, List, Optional, Type, Union, get_args, get_origin

logger = logging.getLogger(__name__)

# Cache so that repeated requests (and recursive references) share one draft type
_draft_class_cache: Dict[Type, Type] = {}


def _is_record_type(tp: Any) -> bool:
    return isinstance(tp, type) and is_dataclass(tp)


def _draft_field_type(field_type: Any) -> Any:
    """Compute the draft annotation for one field type."""
    if field_type is str:
        return str

    origin = get_origin(field_type)
    if origin in (list, List):
        (item_type,) = get_args(field_type) or (Any,)
        return List[make_draft_type(item_type) if _is_record_type(item_type) else item_type]
    if origin in (dict, Dict):
        key_type, value_type = get_args(field_type) or (Any, Any)
        return Dict[key_type, make_draft_type(value_type) if _is_record_type(value_type) else value_type]
    if origin is Union or origin is types.UnionType:
        if type(None) in get_args(field_type):
            return field_type
        return Optional[field_type]

    if _is_record_type(field_type):
        return Optional[make_draft_type(field_type)]
    return Optional[field_type]


def _draft_default(draft_type: Any) -> dataclasses.Field:
    if draft_type is str:
        return field(default="")
    origin = get_origin(draft_type)
    if origin in (list, List):
        return field(default_factory=list)
    if origin in (dict, Dict):
        return field(default_factory=dict)
    return field(default=None)


def make_draft_type(cls: Type) -> Type:
    """Build (or fetch from cache) the all-fields-optional variant of ``cls``.

    Args:
        cls: A dataclass type

    Returns:
        A dataclass named ``Draft<Name>`` whose fields all have defaults

    Raises:
        ValueError: If ``cls`` is not a dataclass type
    """
    if not (isinstance(cls, type) and is_dataclass(cls)):
        raise ValueError(f"{cls} is not a dataclass")
    if cls in _draft_class_cache:
        return _draft_class_cache[cls]

    # Resolve string annotations (from __future__ import annotations)
    hints = typing.get_type_hints(cls)

    field_defs = []
    for f in fields(cls):
        draft_type = _draft_field_type(hints.get(f.name, f.type))
        if draft_type is str and f.default is not MISSING:
            spec = field(default=f.default, metadata=f.metadata)
        else:
            spec = _draft_default(draft_type)
        field_defs.append((f.name, draft_type, spec))

    draft_cls = make_dataclass(f"Draft{cls.__name__}", field_defs)
    draft_cls.__module__ = cls.__module__
    _draft_class_cache[cls] = draft_cls
    logger.debug(f"Created draft type {draft_cls.__name__} for {cls.__name__}")
    return draft_cls
