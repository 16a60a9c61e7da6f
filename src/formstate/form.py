"""
Form definitions.

Definitions are declarative and immutable: they describe which converter,
validators and grouping apply to each key of a record type. Runtime state
lives in the accessor tree built from them (see formstate.state).

Definition entries are a tagged variant:
- Field: a leaf bound to a converter
- SubForm: a nested definition bound to a record-valued key
- RepeatingForm: a nested definition bound to a list-valued key
"""
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Union

from formstate import controlled as controlled_module
from formstate.converter import CONVERSION_ERROR, ConverterOptions, maybe_await
from formstate.errors import ConfigurationError

ValidationResponse = Union[str, None, bool]
Validator = Callable[..., Any]
ErrorMessage = Union[str, Callable[[Any], str]]


class ValidationMessage:
    """Pipeline outcome: the raw input was rejected with ``message``."""

    def __init__(self, message: str):
        self.message = message

    def __repr__(self) -> str:
        return f'ValidationMessage({self.message!r})'


class ProcessValue:
    """Pipeline outcome: the raw input produced ``value``."""

    def __init__(self, value: Any):
        self.value = value

    def __repr__(self) -> str:
        return f'ProcessValue({self.value!r})'


ProcessResponse = Union[ProcessValue, ValidationMessage]


async def _run_validators(validators: Iterable[Validator], value: Any, context: Any) -> Optional[str]:
    """Return the first non-empty string any validator produces."""
    for validator in validators:
        response = await maybe_await(validator(value, context))
        if isinstance(response, str) and response:
            return response
    return None


class Field:
    """Leaf definition: binds a converter and validation options to one key.

    Args:
        converter: Converter for raw <-> value
        raw_validators: Checks run on preprocessed raw, before conversion
        validators: Checks run on the converted value
        conversion_error: Message (or context -> message) for conversion failures
        required_error: Message (or context -> message) for missing input
        required: Empty raw is a validation failure
        derived: node -> value; recomputed whenever the tree changes
        change: (node, value) hook called once per committed change
        controlled: Input-binding strategy overriding the converter default
    """

    def __init__(
        self,
        converter,
        *,
        raw_validators: Sequence[Validator] = (),
        validators: Sequence[Validator] = (),
        conversion_error: ErrorMessage = "Could not convert",
        required_error: ErrorMessage = "Required",
        required: bool = False,
        derived: Optional[Callable[[Any], Any]] = None,
        change: Optional[Callable[[Any, Any], None]] = None,
        controlled: Optional[controlled_module.Controlled] = None,
    ):
        self.converter = converter
        self.raw_validators = list(raw_validators)
        self.validators = list(validators)
        self.conversion_error = conversion_error
        self.required_error = required_error
        self.required = required
        self.derived_func = derived
        self.change_func = change
        self.controlled = controlled or converter.default_controlled

    def get_required_error(self, context: Any) -> str:
        if isinstance(self.required_error, str):
            return self.required_error
        return self.required_error(context)

    def get_conversion_error(self, context: Any) -> str:
        if isinstance(self.conversion_error, str):
            return self.conversion_error
        return self.conversion_error(context)

    async def process(
        self,
        raw: Any,
        required: bool,
        options: Optional[ConverterOptions] = None,
        context: Any = None,
        ignore_required: bool = False,
    ) -> ProcessResponse:
        """Run raw input through the full pipeline.

        preprocess -> required check -> raw validators -> convert -> validators.
        The first failure short-circuits into a ValidationMessage.
        """
        converter = self.converter
        raw = converter.preprocess_raw(raw, options)
        if (
            not converter.never_required
            and not ignore_required
            and required
            and raw == converter.empty_raw
        ):
            return ValidationMessage(self.get_required_error(context))

        message = await _run_validators(self.raw_validators, raw, context)
        if message is not None:
            return ValidationMessage(message)

        result = await converter.convert(raw, options)
        if result is CONVERSION_ERROR:
            # conversion failing on empty input means the field is implicitly required
            if raw == converter.empty_raw:
                return ValidationMessage(self.get_required_error(context))
            return ValidationMessage(self.get_conversion_error(context))

        message = await _run_validators(self.validators, result.value, context)
        if message is not None:
            return ValidationMessage(message)
        return ProcessValue(result.value)

    def render(self, value: Any, options: Optional[ConverterOptions] = None) -> Any:
        return self.converter.render(value, options)


class Group:
    """Named subset of sibling field keys.

    Args:
        include: Keys that belong to the group
        exclude: Keys that do not belong to the group (everything else does)

    Raises:
        ConfigurationError: If both include and exclude are given
    """

    def __init__(self, include: Optional[Sequence[str]] = None, exclude: Optional[Sequence[str]] = None):
        if include is not None and exclude is not None:
            raise ConfigurationError("Group cannot have both include and exclude")
        self.include = list(include) if include is not None else None
        self.exclude = list(exclude) if exclude is not None else None

    def contains(self, name: str) -> bool:
        if self.include is not None:
            return name in self.include
        if self.exclude is not None:
            return name not in self.exclude
        return True


Definition = Dict[str, Union[Field, 'SubForm', 'RepeatingForm']]
GroupDefinition = Dict[str, Group]


class SubForm:
    """Nested definition for a record-valued key."""

    def __init__(self, definition: Definition, group_definition: Optional[GroupDefinition] = None):
        self.definition = definition
        self.group_definition = group_definition or {}


class RepeatingForm:
    """Nested definition for a list-of-records key."""

    def __init__(self, definition: Definition, group_definition: Optional[GroupDefinition] = None):
        self.definition = definition
        self.group_definition = group_definition or {}


class Form:
    """Top-level definition bound to a record type.

    Example:
        >>> form = Form(Person, {
        ...     "name": Field(converters.string, required=True),
        ...     "age": Field(converters.integer),
        ... })
        >>> state = form.state(Person(name="Ada", age=36))
    """

    def __init__(self, model: type, definition: Definition, group_definition: Optional[GroupDefinition] = None):
        self.model = model
        self.definition = definition
        self.group_definition = group_definition or {}

    def state(self, node: Any, **options):
        """Create an editing session over ``node``. See FormState for options."""
        from formstate.state import FormState
        return FormState(self, node, **options)
