"""
Accessors for list-of-records keys.

RepeatingFormAccessor keeps a dense index -> row accessor map that always
covers 0..length-1. Structural changes go through tree patches; the session
feeds the observed add/remove patches back into ``add_index`` and
``delete_index``, which renumber the shifted rows in place instead of
rebuilding them, so a row keeps its transient state (uncommitted raw, local
errors) when a sibling is inserted or removed before it.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from formstate.accessor import Accessor
from formstate.errors import ConfigurationError
from formstate.form import RepeatingForm
from formstate.form_accessor import FormAccessorBase
from formstate.paths import is_int, join_path

logger = logging.getLogger(__name__)


class RepeatingFormIndexedAccessor(FormAccessorBase):
    """One row of a repeating form. ``name`` is the row index."""

    def __init__(self, state, repeating_form: RepeatingForm, parent: 'RepeatingFormAccessor',
                 index: int, just_added: bool = False):
        super().__init__(state, repeating_form.definition, repeating_form.group_definition, parent, index)
        self._just_added = just_added

    @property
    def index(self) -> int:
        return self.name

    def set_index(self, index: int) -> None:
        self.name = index

    @property
    def add_mode(self) -> bool:
        return self._just_added or super().add_mode


class RepeatingFormAccessor(Accessor):
    """Accessor for a list-valued key."""

    def __init__(self, state, repeating_form: RepeatingForm, parent: Accessor, name: str):
        super().__init__(state, parent, name)
        self.repeating_form = repeating_form
        self._indexed_accessors: Dict[int, RepeatingFormIndexedAccessor] = {}

    def initialize(self) -> None:
        self._indexed_accessors = {}
        for index in range(self.length):
            self._create_indexed_accessor(index)

    def _create_indexed_accessor(self, index: int, just_added: bool = False) -> RepeatingFormIndexedAccessor:
        accessor = RepeatingFormIndexedAccessor(self.state, self.repeating_form, self, index, just_added)
        self._indexed_accessors[index] = accessor
        accessor.initialize()
        return accessor

    @property
    def length(self) -> int:
        return len(self.value)

    def index(self, index: int) -> RepeatingFormIndexedAccessor:
        accessor = self._indexed_accessors.get(index)
        if accessor is None:
            raise ConfigurationError(f"{index} is not a row of {self.path}")
        return accessor

    @property
    def accessors(self) -> List[RepeatingFormIndexedAccessor]:
        return [self.index(index) for index in range(self.length)]

    @property
    def flat_accessors(self) -> List[Accessor]:
        result: List[Accessor] = []
        for accessor in self.accessors:
            result.append(accessor)
            result.extend(accessor.flat_accessors)
        return result

    def access_by_steps(self, steps: List[str]) -> Optional[Accessor]:
        if not steps:
            return self
        first, rest = steps[0], steps[1:]
        if not is_int(first):
            raise ConfigurationError(f"Expected index of repeating form {self.path}, got {first!r}")
        return self.index(int(first)).access_by_steps(rest)

    # ========== VALIDATION ==========

    async def validate(self, ignore_required: Optional[bool] = None, ignore_error: bool = False) -> bool:
        results = await asyncio.gather(
            *(accessor.validate(ignore_required, ignore_error) for accessor in self.accessors)
        )
        if not ignore_error and self.error is not None:
            return False
        return all(results)

    @property
    def is_valid(self) -> bool:
        return self.error is None and all(accessor.is_valid for accessor in self.accessors)

    # ========== STRUCTURAL EDITS (via tree patches) ==========

    def insert(self, index: int, node: Any) -> None:
        self.state.apply_structural("add", join_path(self.path, index), node)

    def push(self, node: Any) -> None:
        self.insert(self.length, node)

    def remove(self, node: Any) -> None:
        """Remove ``node`` (matched by identity) from the list."""
        for index, entry in enumerate(self.value):
            if entry is node:
                self.remove_index(index)
                return
        raise ConfigurationError(f"Cannot find node to remove from {self.path}")

    def remove_index(self, index: int) -> None:
        if index < 0 or index >= self.length:
            raise ConfigurationError(f"Cannot remove index {index} from {self.path} (length {self.length})")
        self.state.apply_structural("remove", join_path(self.path, index))

    # ========== RENUMBERING (driven by observed patches) ==========

    def add_index(self, index: int) -> None:
        """Shift rows at or after ``index`` up by one, then create the new row."""
        to_renumber = [
            accessor for i, accessor in self._indexed_accessors.items() if i >= index
        ]
        for accessor in to_renumber:
            accessor.set_index(accessor.index + 1)
        self._execute_renumber(to_renumber)
        self._create_indexed_accessor(index, just_added=True)
        logger.debug(f"Added row {index} to {self.path}, renumbered {len(to_renumber)}")

    def delete_index(self, index: int) -> None:
        """Drop the row at ``index`` and shift later rows down by one."""
        if self._indexed_accessors.pop(index, None) is None:
            return
        to_renumber = [
            accessor for i, accessor in self._indexed_accessors.items() if i > index
        ]
        for accessor in to_renumber:
            accessor.set_index(accessor.index - 1)
        self._execute_renumber(to_renumber)
        logger.debug(f"Removed row {index} from {self.path}, renumbered {len(to_renumber)}")

    def _execute_renumber(self, renumbered: List[RepeatingFormIndexedAccessor]) -> None:
        # remove every moved row under its old key first, then insert under the
        # new keys, so no row overwrites another mid-way
        stale_keys = [i for i, accessor in self._indexed_accessors.items() if accessor in renumbered]
        for key in stale_keys:
            del self._indexed_accessors[key]
        for accessor in renumbered:
            self._indexed_accessors[accessor.index] = accessor
