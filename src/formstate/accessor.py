"""
Shared accessor behaviour.

Every node of the accessor tree knows its parent, derives its tree address
from the parent chain (so renumbering a list row relabels all descendants
at once) and resolves access-control flags top-down:

    parent flag -> server access update -> session policy function
"""
import logging
from typing import Any, Dict, List, Optional

from formstate.paths import join_path, path_to_fieldref

logger = logging.getLogger(__name__)

ACCESS_FLAGS = ("read_only", "disabled", "hidden", "required")


class Accessor:
    """Base class for FieldAccessor and the form/list accessors."""

    def __init__(self, state, parent: Optional['Accessor'], name: Any):
        self.state = state
        self.parent = parent
        self.name = name
        self._error: Optional[str] = None
        # Server-authoritative overrides (None = not set)
        self._access: Dict[str, Optional[bool]] = {flag: None for flag in ACCESS_FLAGS}

    @property
    def path(self) -> str:
        if self.parent is None:
            return ""
        return join_path(self.parent.path, self.name)

    @property
    def fieldref(self) -> str:
        return path_to_fieldref(self.path)

    @property
    def value(self) -> Any:
        return self.state.get_value(self.path)

    @property
    def add_mode(self) -> bool:
        return self.parent.add_mode if self.parent is not None else False

    # ========== ACCESS CONTROL ==========

    def set_access(self, read_only: Optional[bool] = None, disabled: Optional[bool] = None,
                   hidden: Optional[bool] = None, required: Optional[bool] = None) -> None:
        """Store server-provided access flags; None leaves a flag untouched."""
        for flag, value in (("read_only", read_only), ("disabled", disabled),
                            ("hidden", hidden), ("required", required)):
            if value is not None:
                self._access[flag] = value

    def _resolve_flag(self, flag: str, policy) -> bool:
        if self.parent is not None and getattr(self.parent, flag):
            return True
        override = self._access[flag]
        if override is not None:
            return override
        return bool(policy(self))

    @property
    def disabled(self) -> bool:
        return self._resolve_flag("disabled", self.state.is_disabled_func)

    @property
    def hidden(self) -> bool:
        return self._resolve_flag("hidden", self.state.is_hidden_func)

    @property
    def read_only(self) -> bool:
        return self._resolve_flag("read_only", self.state.is_read_only_func)

    @property
    def input_allowed(self) -> bool:
        return not self.disabled and not self.hidden and not self.read_only

    # ========== MESSAGES ==========

    def set_error(self, error: str) -> None:
        self._error = error

    def clear_error(self) -> None:
        self._error = None

    @property
    def error(self) -> Optional[str]:
        """Local error first, then the externally injected one for this path."""
        if self._error is not None:
            return self._error
        return self.state.external_errors.get(self.path)

    @property
    def warning(self) -> Optional[str]:
        return self.state.external_warnings.get(self.path)

    @property
    def flat_accessors(self) -> List['Accessor']:
        return []

    def access_by_steps(self, steps: List[str]) -> Optional['Accessor']:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.path or "/"!r})'
