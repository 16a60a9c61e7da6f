"""
Raw <-> value conversion.

A converter is a pure transformation unit with no knowledge of the tree:
``preprocess_raw`` normalises what the user typed, ``convert`` turns raw
input into a value (or reports a conversion error) and ``render`` turns a
value back into raw input.
"""
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from formstate import controlled
from formstate.errors import ConfigurationError

logger = logging.getLogger(__name__)

R = TypeVar('R')
V = TypeVar('V')

# Sentinel for "no empty_value configured" (None is a legitimate empty value)
_UNSET = type('_Unset', (), {'__repr__': lambda self: '<unset>'})()


class ConvertError(Exception):
    """Raise from a convert function to signal invalid user input."""


class ConversionError:
    """Type of the CONVERSION_ERROR singleton."""

    def __repr__(self) -> str:
        return 'CONVERSION_ERROR'


CONVERSION_ERROR = ConversionError()


class ConversionValue(Generic[V]):
    """Successful conversion outcome."""

    def __init__(self, value: V):
        self.value = value

    def __repr__(self) -> str:
        return f'ConversionValue({self.value!r})'


ConversionResponse = Union[ConversionValue, ConversionError]


@dataclass(frozen=True)
class ConverterOptions:
    """Session-wide formatting options handed to every convert/render call."""
    decimal_separator: str = "."
    thousand_separator: str = ","
    render_thousands: bool = False


DEFAULT_CONVERTER_OPTIONS = ConverterOptions()


async def maybe_await(result: Any) -> Any:
    """Await ``result`` if the callable that produced it was async."""
    if inspect.isawaitable(result):
        return await result
    return result


class Converter(Generic[R, V]):
    """Configurable converter.

    Args:
        empty_raw: Raw value meaning "nothing entered"
        convert: raw -> value; may raise ConvertError
        render: value -> raw
        empty_value: Value produced for ``empty_raw`` without calling ``convert``
        empty_impossible: ``empty_raw`` can never convert (always a conversion error)
        raw_validate: raw -> bool check run before ``convert`` (sync or async)
        validate: value -> bool check run after ``convert`` (sync or async)
        default_controlled: Input-binding strategy used when a Field has none
        never_required: The required check never applies (e.g. booleans)
        preprocess_raw: raw -> raw normalisation applied before the pipeline

    Raises:
        ConfigurationError: If both ``empty_value`` and ``empty_impossible`` are given
    """

    def __init__(
        self,
        empty_raw: R,
        convert: Callable[..., V],
        render: Callable[..., R],
        *,
        empty_value: Any = _UNSET,
        empty_impossible: bool = False,
        raw_validate: Optional[Callable[[R], Any]] = None,
        validate: Optional[Callable[[V], Any]] = None,
        default_controlled: controlled.Controlled = controlled.value,
        never_required: bool = False,
        preprocess_raw: Optional[Callable[[R], R]] = None,
    ):
        if empty_value is not _UNSET and empty_impossible:
            raise ConfigurationError("Cannot set both empty_value and empty_impossible")
        self.empty_raw = empty_raw
        self.empty_value = empty_value
        self.empty_impossible = empty_impossible
        self.default_controlled = default_controlled
        self.never_required = never_required
        self._convert = convert
        self._render = render
        self._raw_validate = raw_validate
        self._validate = validate
        self._preprocess_raw = preprocess_raw

    @property
    def has_empty_value(self) -> bool:
        return self.empty_value is not _UNSET

    def preprocess_raw(self, raw: R, options: Optional[ConverterOptions] = None) -> R:
        if self._preprocess_raw is None:
            return raw
        return self._preprocess_raw(raw)

    async def convert(self, raw: R, options: Optional[ConverterOptions] = None) -> ConversionResponse:
        """Convert raw input.

        Returns:
            ConversionValue on success, CONVERSION_ERROR otherwise. Exceptions
            other than ConvertError propagate.
        """
        options = options or DEFAULT_CONVERTER_OPTIONS
        if raw == self.empty_raw:
            if self.empty_impossible:
                return CONVERSION_ERROR
            if self.has_empty_value:
                return ConversionValue(self.empty_value)
        if self._raw_validate is not None and not await maybe_await(self._raw_validate(raw)):
            return CONVERSION_ERROR
        try:
            value = self._call(self._convert, raw, options)
        except ConvertError:
            return CONVERSION_ERROR
        if self._validate is not None and not await maybe_await(self._validate(value)):
            return CONVERSION_ERROR
        return ConversionValue(value)

    def render(self, value: V, options: Optional[ConverterOptions] = None) -> R:
        if self.has_empty_value and value == self.empty_value:
            return self.empty_raw
        return self._call(self._render, value, options or DEFAULT_CONVERTER_OPTIONS)

    @staticmethod
    def _call(func: Callable, arg: Any, options: ConverterOptions) -> Any:
        # convert/render functions may or may not accept the options argument
        if isinstance(func, type):
            return func(arg)
        try:
            params = inspect.signature(func).parameters
        except (TypeError, ValueError):
            return func(arg)
        if len(params) >= 2:
            return func(arg, options)
        return func(arg)
