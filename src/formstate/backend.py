"""
Remote synchronisation.

The Backend talks to a remote authority through three optional,
caller-supplied functions (sync or async):

- ``save(node, generation) -> Optional[partial ProcessResult]``
- ``process(node, path, live_only, generation) -> ProcessResult``
- ``process_all(node, live_only, generation) -> partial ProcessResult``

Every result is merged with ``run_process_result``:

1. a result stamped with another generation is discarded whole
2. updates are applied unless the path was edited locally in the meantime
3. access updates are applied unconditionally
4. error and warning validations replace the previous sets

Results may be ProcessResult instances or JSON-like dicts as sent by a
server (camelCase keys are accepted).
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from formstate.change_tracker import ChangeTracker
from formstate.converter import maybe_await
from formstate.errors import ConfigurationError
from formstate.tree import apply_patch
from formstate.validation_messages import ValidationInfo, as_validation_info

logger = logging.getLogger(__name__)


def _pick(data: Dict[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    if snake in data:
        return data[snake]
    return data.get(camel, default)


@dataclass(frozen=True)
class Update:
    """Server-computed value for one tree path."""
    path: str
    value: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Update':
        return cls(path=data['path'], value=data.get('value'))


@dataclass(frozen=True)
class AccessUpdate:
    """Server-authoritative access flags for one tree path (None = unchanged)."""
    path: str
    read_only: Optional[bool] = None
    disabled: Optional[bool] = None
    hidden: Optional[bool] = None
    required: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccessUpdate':
        return cls(
            path=data['path'],
            read_only=_pick(data, 'read_only', 'readOnly'),
            disabled=data.get('disabled'),
            hidden=data.get('hidden'),
            required=data.get('required'),
        )


@dataclass
class ProcessResult:
    """Remote response: updates, access updates and validation messages."""
    updates: List[Update] = field(default_factory=list)
    access_updates: List[AccessUpdate] = field(default_factory=list)
    error_validations: List[ValidationInfo] = field(default_factory=list)
    warning_validations: List[ValidationInfo] = field(default_factory=list)
    generation: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProcessResult':
        """Build from a possibly partial dict; absent lists become empty."""
        return cls(
            updates=[u if isinstance(u, Update) else Update.from_dict(u) for u in data.get('updates', [])],
            access_updates=[
                u if isinstance(u, AccessUpdate) else AccessUpdate.from_dict(u)
                for u in _pick(data, 'access_updates', 'accessUpdates', [])
            ],
            error_validations=[
                as_validation_info(v) for v in _pick(data, 'error_validations', 'errorValidations', [])
            ],
            warning_validations=[
                as_validation_info(v) for v in _pick(data, 'warning_validations', 'warningValidations', [])
            ],
            generation=data.get('generation'),
        )

    @classmethod
    def coerce(cls, result: Union['ProcessResult', Dict[str, Any]]) -> 'ProcessResult':
        if isinstance(result, ProcessResult):
            return result
        return cls.from_dict(result)


def default_apply_update(node: Any, update: Update) -> None:
    apply_patch(node, [{"op": "replace", "path": update.path, "value": update.value}])


class Backend:
    """Orchestrates save / process / process_all against the remote authority.

    Args:
        state: The owning FormState (provides node, generation, live_only)
        save: Remote save, called explicitly
        process: Remote per-path check, called after a path's debounce
        process_all: Remote bulk check
        debounce: Seconds of quiet before `process` runs
        delay: Freshness window after the debounce fires
        apply_update: Applies one Update to the node
    """

    def __init__(
        self,
        state,
        save: Optional[Callable] = None,
        process: Optional[Callable] = None,
        process_all: Optional[Callable] = None,
        debounce: float = 0.5,
        delay: float = 1.0,
        apply_update: Callable[[Any, Update], None] = default_apply_update,
    ):
        self.state = state
        self.save = save
        self.process = process
        self.process_all = process_all
        self.apply_update = apply_update
        self.change_tracker = ChangeTracker(self.real_process, debounce=debounce, delay=delay)

    @property
    def node(self) -> Any:
        return self.state.node

    def run(self, path: str) -> None:
        self.change_tracker.change(path)

    def is_finished(self) -> bool:
        return self.change_tracker.is_finished()

    def run_process_result(self, process_result: ProcessResult) -> bool:
        """Merge a remote result into the tree and the session.

        Returns:
            False if the result belongs to another generation and was discarded.
        """
        generation = process_result.generation
        if generation is not None and generation != self.state.generation:
            logger.debug(f"Discarding result of generation {generation} (current {self.state.generation})")
            return False
        for update in process_result.updates:
            # local input takes precedence over a racing remote computation
            if self.change_tracker.has_changed(update.path):
                logger.debug(f"Ignoring update for locally changed path {update.path}")
                continue
            self.apply_update(self.node, update)
        for access_update in process_result.access_updates:
            self.state.set_access_update(access_update)
        self.state.set_external_validations(process_result.error_validations, "error")
        self.state.set_external_validations(process_result.warning_validations, "warning")
        return True

    def clear_validations(self) -> None:
        self.state.clear_external_validations("error")
        self.state.clear_external_validations("warning")

    async def real_save(self) -> bool:
        """Call the remote save.

        Returns:
            True if saved cleanly (no result), False if the result carried
            problems, which are merged into the session.
        """
        if self.save is None:
            raise ConfigurationError("Cannot save if save function is not configured")
        result = await maybe_await(self.save(self.node, self.state.generation))
        if result is None:
            self.clear_validations()
            return True
        self.run_process_result(ProcessResult.coerce(result))
        return False

    async def real_process_all(self, live_only: Optional[bool] = None) -> bool:
        """Bulk check of the whole record; replaces all external validations."""
        if self.process_all is None:
            raise ConfigurationError("Cannot process all if process_all function is not configured")
        if live_only is None:
            live_only = self.state.live_only
        result = await maybe_await(self.process_all(self.node, live_only, self.state.generation))
        self.clear_validations()
        return self.run_process_result(ProcessResult.coerce(result or {}))

    async def real_revalidate(self) -> bool:
        """Bulk check reporting every problem, not just live ones (e.g. before submit)."""
        return await self.real_process_all(live_only=False)

    async def real_process(self, path: str) -> None:
        """Background check for one path, run when its debounce fires."""
        if self.process is None:
            return
        try:
            result = await maybe_await(
                self.process(self.node, path, self.state.live_only, self.state.generation)
            )
        except Exception as e:
            # a failed background check must not disturb the local state
            logger.error(f"Unexpected error during process for {path}: {e}")
            return
        if not self.run_process_result(ProcessResult.coerce(result)):
            # stale generation: try again once the tree has settled
            self.change_tracker.change(path)
