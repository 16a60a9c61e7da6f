"""
FieldAccessor: runtime state of one leaf field.

Per-field state machine::

    pristine -> editing -> valid | invalid(required | conversion | validator)

Any new raw input re-enters ``editing``; ``validate()`` re-runs the
pipeline on the current raw without committing anything.
"""
import logging
from typing import Any, Dict, List, Optional

from formstate.accessor import Accessor
from formstate.errors import ConfigurationError
from formstate.form import Field, ValidationMessage

logger = logging.getLogger(__name__)


class FieldAccessor(Accessor):
    """Accessor for a Field definition.

    ``raw`` is what the input shows (possibly invalid); ``value`` is what is
    committed in the data tree. The two only agree after a successful
    conversion.
    """

    def __init__(self, state, field: Field, parent: Accessor, name: str):
        super().__init__(state, parent, name)
        self.field = field
        if state.add_mode:
            # a new record shows empty inputs rather than its placeholder values
            self._raw = field.converter.empty_raw
        else:
            self._raw = field.render(self.value, state.converter_options)
        # value the raw was last synchronised with
        self._known_value = self.value
        # last computed derived value; only a change of it is written back
        self._last_derived = None
        if field.derived_func is not None:
            self._last_derived = field.derived_func(parent.value)

    @property
    def raw(self) -> Any:
        return self._raw

    @property
    def required(self) -> bool:
        if self.field.converter.never_required:
            return False
        override = self._access["required"]
        if override is not None:
            return override
        return self.field.required or bool(self.state.is_required_func(self))

    @property
    def is_valid(self) -> bool:
        return self.error is None

    @property
    def controlled(self) -> Dict[str, Any]:
        """Props for binding an input widget to this field."""
        return self.field.controlled(self)

    async def _run_pipeline(self, raw: Any, ignore_required: bool):
        """Process ``raw`` and update the error state.

        Returns the ProcessValue on success, ``None`` on a validation failure
        or when a newer raw arrived (or the record was swapped) while the
        pipeline was suspended.
        """
        generation = self.state.generation
        result = await self.field.process(
            raw,
            self.required,
            self.state.converter_options,
            self.state.context,
            ignore_required=ignore_required,
        )
        if generation != self.state.generation:
            # the record was swapped meanwhile, this accessor no longer belongs to the tree
            logger.debug(f"Discarding pipeline result for {self.path} from generation {generation}")
            return None
        if raw != self._raw:
            # superseded by newer input, its own pipeline run decides
            logger.debug(f"Discarding stale pipeline result for {self.path}")
            return None
        if isinstance(result, ValidationMessage):
            self._error = result.message
            return None
        self._error = None
        return result

    async def set_raw(self, raw: Any, ignore_required: bool = False) -> None:
        """Accept new raw input from the user.

        Raw is stored immediately. On successful processing the value is
        committed to the tree; only an actual change fires the change hook
        and schedules background processing.
        """
        self._raw = raw
        self.state.touch()
        result = await self._run_pipeline(raw, ignore_required)
        if result is None:
            return
        if result.value == self.value:
            return
        self.state.commit_field(self, result.value)
        self._known_value = result.value
        if self.field.change_func is not None:
            self.field.change_func(self.parent.value, result.value)
            self.state.sync()

    async def validate(self, ignore_required: Optional[bool] = None, ignore_error: bool = False) -> bool:
        """Re-run the pipeline against the current raw without committing.

        Rows that were just added are lenient about required fields while
        the session is still in live-only mode.

        Returns:
            The outcome of the local pipeline only. Externally injected
            errors still show in ``error`` and ``is_valid``.
        """
        if ignore_required is None:
            ignore_required = self.add_mode and self.state.live_only
        await self._run_pipeline(self._raw, ignore_required)
        return self._error is None

    def set_value(self, value: Any) -> None:
        """Programmatically write a value; raw follows through tree observation."""
        self.state.apply_replace(self.path, value)

    def refresh_raw(self) -> None:
        """Re-render raw from the committed value (value changed underneath us)."""
        value = self.value
        self._raw = self.field.render(value, self.state.converter_options)
        self._known_value = value
        self._error = None

    def sync_raw(self) -> None:
        """Refresh raw if the tree value was changed without going through a patch."""
        if self.value != self._known_value:
            self.refresh_raw()

    def refresh_derived(self) -> None:
        """Write the derived value back when its inputs changed.

        A value the user typed over a derived field stays until the
        computation itself yields something new.
        """
        if self.field.derived_func is None:
            return
        derived = self.field.derived_func(self.parent.value)
        if derived == self._last_derived:
            return
        self._last_derived = derived
        if derived != self.value:
            logger.debug(f"Derived value changed for {self.path}")
            self.set_value(derived)

    def access_by_steps(self, steps: List[str]) -> Optional[Accessor]:
        if steps:
            raise ConfigurationError(f"Cannot access below field {self.path}")
        return self
