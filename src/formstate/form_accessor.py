"""
Form-level accessors.

FormAccessorBase builds one child accessor per definition entry, dispatching
once on the entry kind. It is shared by the session root (FormState), nested
records (SubFormAccessor) and list rows (RepeatingFormIndexedAccessor).
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from formstate.accessor import Accessor
from formstate.errors import ConfigurationError
from formstate.field_accessor import FieldAccessor
from formstate.form import Definition, Field, Group, GroupDefinition, RepeatingForm, SubForm

logger = logging.getLogger(__name__)


class FormAccessorBase(Accessor):
    """Accessor owning one child accessor per definition key."""

    def __init__(self, state, definition: Definition, group_definition: Optional[GroupDefinition],
                 parent: Optional[Accessor], name: Any):
        super().__init__(state, parent, name)
        self.definition = definition
        self.group_definition = group_definition or {}
        self._accessors: Dict[str, Accessor] = {}

    def initialize(self) -> None:
        """(Re)build all child accessors from the current tree."""
        self._accessors = {}
        for name, entry in self.definition.items():
            self._accessors[name] = self._create_accessor(name, entry)

    def _create_accessor(self, name: str, entry) -> Accessor:
        # Imported here to avoid circular imports (rows are form accessors themselves)
        from formstate.repeating_form_accessor import RepeatingFormAccessor

        if isinstance(entry, Field):
            return FieldAccessor(self.state, entry, self, name)
        if isinstance(entry, SubForm):
            accessor = SubFormAccessor(self.state, entry, self, name)
        elif isinstance(entry, RepeatingForm):
            accessor = RepeatingFormAccessor(self.state, entry, self, name)
        else:
            raise ConfigurationError(f"Unknown definition entry for {name!r}: {entry!r}")
        accessor.initialize()
        return accessor

    # ========== LOOKUP ==========

    def access(self, name: str) -> Optional[Accessor]:
        return self._accessors.get(name)

    def _access_typed(self, name: str, accessor_type: type, kind: str):
        accessor = self._accessors.get(name)
        if not isinstance(accessor, accessor_type):
            raise ConfigurationError(f"{name!r} is not a {kind} of {self.path or '/'}")
        return accessor

    def field(self, name: str) -> FieldAccessor:
        return self._access_typed(name, FieldAccessor, "field")

    def sub_form(self, name: str) -> 'SubFormAccessor':
        return self._access_typed(name, SubFormAccessor, "sub form")

    def repeating_form(self, name: str):
        from formstate.repeating_form_accessor import RepeatingFormAccessor
        return self._access_typed(name, RepeatingFormAccessor, "repeating form")

    def group(self, name: str) -> 'GroupAccessor':
        group = self.group_definition.get(name)
        if group is None:
            raise ConfigurationError(f"No group {name!r} defined for {self.path or '/'}")
        return GroupAccessor(self, group)

    @property
    def accessors(self) -> List[Accessor]:
        return list(self._accessors.values())

    @property
    def flat_accessors(self) -> List[Accessor]:
        """Depth-first, pre-order flattening of all descendants."""
        result: List[Accessor] = []
        for accessor in self._accessors.values():
            result.append(accessor)
            result.extend(accessor.flat_accessors)
        return result

    def access_by_steps(self, steps: List[str]) -> Optional[Accessor]:
        if not steps:
            return self
        first, rest = steps[0], steps[1:]
        accessor = self._accessors.get(first)
        if accessor is None:
            return None
        return accessor.access_by_steps(rest)

    # ========== VALIDATION ==========

    async def validate(self, ignore_required: Optional[bool] = None, ignore_error: bool = False) -> bool:
        results = await asyncio.gather(
            *(accessor.validate(ignore_required, ignore_error) for accessor in self._accessors.values())
        )
        return all(results)

    @property
    def is_valid(self) -> bool:
        return all(accessor.is_valid for accessor in self._accessors.values())


class SubFormAccessor(FormAccessorBase):
    """Accessor for a record-valued key. An empty (None) record has no children."""

    def __init__(self, state, sub_form: SubForm, parent: Accessor, name: str):
        super().__init__(state, sub_form.definition, sub_form.group_definition, parent, name)
        self.sub_form = sub_form

    def initialize(self) -> None:
        if self.value is None:
            self._accessors = {}
            return
        super().initialize()


class GroupAccessor:
    """View over the field accessors of one form that belong to a Group."""

    def __init__(self, form_accessor: FormAccessorBase, group: Group):
        self.form_accessor = form_accessor
        self.group = group

    @property
    def accessors(self) -> List[FieldAccessor]:
        return [
            accessor for name, accessor in self.form_accessor._accessors.items()
            if isinstance(accessor, FieldAccessor) and self.group.contains(name)
        ]

    @property
    def is_valid(self) -> bool:
        return all(accessor.is_valid for accessor in self.accessors)

    async def validate(self, ignore_required: Optional[bool] = None, ignore_error: bool = False) -> bool:
        results = await asyncio.gather(
            *(accessor.validate(ignore_required, ignore_error) for accessor in self.accessors)
        )
        return all(results)
