"""
FormState: the editing session.

A FormState is the root of the accessor tree built from a (Form, node)
pair. It owns session configuration (access policies, validation context,
converter options, remote functions), the generation counter, the external
validation stores, and the subscription to the data tree's patch stream
that keeps the accessor tree in shape with the data.
"""
import asyncio
import logging
from typing import Any, Callable, Iterable, Optional

from formstate.converter import DEFAULT_CONVERTER_OPTIONS, ConverterOptions
from formstate.errors import ConfigurationError
from formstate.field_accessor import FieldAccessor
from formstate.form_accessor import FormAccessorBase, SubFormAccessor
from formstate.paths import is_int, path_to_steps
from formstate.repeating_form_accessor import RepeatingFormAccessor, RepeatingFormIndexedAccessor
from formstate.tree import Patch, apply_patch, off_patch, on_patch, resolve_path
from formstate.validation_messages import SEVERITIES, ExternalMessages, ValidationInfo, as_validation_info

logger = logging.getLogger(__name__)

# Seconds of quiet before an edited path is sent to the remote `process`
DEFAULT_DEBOUNCE = 0.5
# Seconds after the debounce fires during which server updates for the path are ignored
DEFAULT_DELAY = 1.0

SAVE_STATUSES = ("before", "rightAfter", "after")


def _never(accessor) -> bool:
    return False


class FormState(FormAccessorBase):
    """Editing session over one record.

    Args:
        form: The Form definition
        node: The record being edited
        add_mode: The record is new; fields start with empty raw
        is_disabled / is_hidden / is_read_only / is_required: Policy callables
            taking an accessor
        context: Passed to validators and error message callables
        converter_options: ConverterOptions for every convert/render
        save / process / process_all: Remote authority functions (see Backend)
        debounce: Seconds of quiet before `process` runs for a path
        delay: Freshness window (seconds) after the debounce fires
        apply_update: (node, Update) -> None, applies one server update

    Example:
        >>> state = form.state(person, process=check_person)
        >>> await state.field("age").set_raw("36")
        >>> state.field("age").value
        36
    """

    def __init__(
        self,
        form,
        node: Any,
        *,
        add_mode: bool = False,
        is_disabled: Callable[[Any], bool] = _never,
        is_hidden: Callable[[Any], bool] = _never,
        is_read_only: Callable[[Any], bool] = _never,
        is_required: Callable[[Any], bool] = _never,
        context: Any = None,
        converter_options: Optional[ConverterOptions] = None,
        save: Optional[Callable] = None,
        process: Optional[Callable] = None,
        process_all: Optional[Callable] = None,
        debounce: float = DEFAULT_DEBOUNCE,
        delay: float = DEFAULT_DELAY,
        apply_update: Optional[Callable] = None,
    ):
        super().__init__(self, form.definition, form.group_definition, None, None)
        self.form = form
        self.node = node
        self._add_mode = add_mode
        self.is_disabled_func = is_disabled
        self.is_hidden_func = is_hidden
        self.is_read_only_func = is_read_only
        self.is_required_func = is_required
        self.context = context
        self.converter_options = converter_options or DEFAULT_CONVERTER_OPTIONS

        self.generation = 0
        self.save_status = "before"
        self.external_errors = ExternalMessages()
        self.external_warnings = ExternalMessages()

        # Field whose own commit is being applied (its raw must not be re-rendered)
        self._committing: Optional[FieldAccessor] = None
        self._updating_derived = False

        self.backend = None
        if save is not None or process is not None or process_all is not None:
            from formstate.backend import Backend
            backend_options = {"debounce": debounce, "delay": delay}
            if apply_update is not None:
                backend_options["apply_update"] = apply_update
            self.backend = Backend(self, save=save, process=process, process_all=process_all, **backend_options)

        self.initialize()
        on_patch(self.node, self._on_patch)
        logger.debug(f"Created FormState for {type(node).__name__} (generation {self.generation})")

    # ========== SESSION STATE ==========

    @property
    def add_mode(self) -> bool:
        return self._add_mode

    @property
    def live_only(self) -> bool:
        """True until the first save attempt; background checks report live problems only."""
        return self.save_status == "before"

    def reset_save_status(self) -> None:
        self.save_status = "before"

    def touch(self) -> None:
        """Record user input (moves a just-saved session into 'after')."""
        if self.save_status == "rightAfter":
            self.save_status = "after"

    def get_value(self, path: str) -> Any:
        return resolve_path(self.node, path)

    def access_by_path(self, path: str):
        """Resolve a tree address to its accessor, or None if no accessor lives there."""
        return self.access_by_steps(path_to_steps(path))

    def _find_accessor(self, steps) -> Optional[Any]:
        try:
            return self.access_by_steps(steps)
        except ConfigurationError:
            return None

    # ========== TREE WRITES ==========

    def apply_replace(self, path: str, value: Any) -> None:
        apply_patch(self.node, [{"op": "replace", "path": path, "value": value}])

    def commit_field(self, accessor: FieldAccessor, value: Any) -> None:
        """Write a field's freshly converted value and schedule background processing."""
        self._committing = accessor
        try:
            self.apply_replace(accessor.path, value)
        finally:
            self._committing = None
        self._schedule_process(accessor.path)

    def apply_structural(self, op: str, path: str, value: Any = None) -> None:
        patch = {"op": op, "path": path}
        if op != "remove":
            patch["value"] = value
        apply_patch(self.node, [patch])
        self._schedule_process(path)

    def _schedule_process(self, path: str) -> None:
        if self.backend is None:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, not scheduling process for {path}")
            return
        self.backend.run(path)

    def sync(self) -> None:
        """Re-render the raw of every field whose tree value changed behind its back."""
        for accessor in self.flat_accessors:
            if isinstance(accessor, FieldAccessor):
                accessor.sync_raw()

    # ========== TREE OBSERVATION ==========

    def _owning_field(self, steps) -> Optional[FieldAccessor]:
        """Field whose value contains the node at ``steps`` (e.g. an entry of a list-valued field)."""
        for end in range(len(steps), 0, -1):
            accessor = self._find_accessor(steps[:end])
            if isinstance(accessor, FieldAccessor):
                return accessor
        return None

    def _on_patch(self, patch: Patch) -> None:
        op = patch["op"]
        steps = path_to_steps(patch["path"])
        container = self._find_accessor(steps[:-1]) if op in ("add", "remove") else None
        if isinstance(container, RepeatingFormAccessor) and is_int(steps[-1]):
            if op == "add":
                container.add_index(int(steps[-1]))
            else:
                container.delete_index(int(steps[-1]))
        else:
            accessor = self._find_accessor(steps) if op != "remove" else None
            if accessor is None:
                accessor = self._owning_field(steps)
            if isinstance(accessor, FieldAccessor):
                if accessor is not self._committing:
                    accessor.refresh_raw()
            elif isinstance(accessor, (RepeatingFormAccessor, SubFormAccessor, RepeatingFormIndexedAccessor)):
                logger.debug(f"Rebuilding accessors below {patch['path']}")
                accessor.initialize()
        self._update_derived()

    def _update_derived(self) -> None:
        if self._updating_derived:
            return
        self._updating_derived = True
        try:
            for accessor in self.flat_accessors:
                # a field being committed keeps the value it was given
                if isinstance(accessor, FieldAccessor) and accessor is not self._committing:
                    accessor.refresh_derived()
        finally:
            self._updating_derived = False

    def replace_node(self, node: Any) -> None:
        """Swap the backing record: bump the generation and rebuild every accessor.

        Results of remote calls issued against the old generation are discarded.
        """
        off_patch(self.node, self._on_patch)
        self.node = node
        self.generation += 1
        self.clear_external_validations("error")
        self.clear_external_validations("warning")
        self.initialize()
        on_patch(self.node, self._on_patch)
        logger.debug(f"Replaced node, now at generation {self.generation}")

    def dispose(self) -> None:
        """End the session: stop observing the tree and cancel pending work."""
        off_patch(self.node, self._on_patch)
        if self.backend is not None:
            self.backend.change_tracker.dispose()

    # ========== EXTERNAL VALIDATION & ACCESS ==========

    def _messages(self, kind: str) -> ExternalMessages:
        if kind not in SEVERITIES:
            raise ConfigurationError(f"Unknown validation kind {kind!r}, expected one of {SEVERITIES}")
        return self.external_errors if kind == "error" else self.external_warnings

    def set_external_validations(self, validations: Iterable[ValidationInfo], kind: str) -> None:
        """Replace the external messages of ``kind`` ("error" or "warning").

        Entries may be ValidationInfo instances or dicts as sent by a server.
        """
        self._messages(kind).replace(as_validation_info(info) for info in validations)

    def clear_external_validations(self, kind: str) -> None:
        self._messages(kind).clear()

    def set_access_update(self, update) -> None:
        accessor = self._find_accessor(path_to_steps(update.path))
        if accessor is None:
            logger.debug(f"Ignoring access update for unknown path {update.path}")
            return
        accessor.set_access(
            read_only=update.read_only,
            disabled=update.disabled,
            hidden=update.hidden,
            required=update.required,
        )

    # ========== REMOTE FLOWS ==========

    def _require_backend(self):
        if self.backend is None:
            raise ConfigurationError("No remote functions configured for this FormState")
        return self.backend

    async def save(self) -> bool:
        """Validate everything, wait for pending edits, then call the remote save.

        Only local validation gates the call: errors left over from an earlier
        remote result are for the server to confirm or clear.

        Returns:
            True if the form was valid and saved cleanly, False otherwise
            (inspect field errors).
        """
        backend = self._require_backend()
        self.save_status = "rightAfter"
        if not await self.validate(ignore_error=True):
            return False
        await backend.change_tracker.wait_until_finished()
        return await backend.real_save()

    async def process_all(self) -> None:
        await self._require_backend().real_process_all()

    async def revalidate(self) -> None:
        await self._require_backend().real_revalidate()

    def is_finished(self) -> bool:
        return self.backend is None or self.backend.is_finished()
