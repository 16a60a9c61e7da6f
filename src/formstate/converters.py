"""
Stock converters.

String-based converters trim their input and check it against a grammar
before parsing. Numeric grammar: optional leading ``-``, digits without a
useless leading zero, optional fractional part. The decimal converter keeps
the textual representation as its value so no floating point rounding ever
happens.
"""
import logging
import re
from decimal import Decimal
from typing import Any, List, Optional

from formstate import controlled
from formstate.converter import (
    CONVERSION_ERROR,
    DEFAULT_CONVERTER_OPTIONS,
    ConversionResponse,
    ConversionValue,
    Converter,
    ConverterOptions,
)
from formstate.paths import identity

logger = logging.getLogger(__name__)

NUMBER_REGEX = re.compile(r"^-?(0|[1-9]\d*)(\.\d*)?$")
INTEGER_REGEX = re.compile(r"^-?(0|[1-9]\d*)$")


class StringConverter(Converter):
    """Converter for text input; raw is trimmed before anything else."""

    def preprocess_raw(self, raw: str, options: Optional[ConverterOptions] = None) -> str:
        return raw.strip()


def _number_raw_validate(raw: str) -> bool:
    if raw.startswith("."):
        raw = "0" + raw
    return NUMBER_REGEX.match(raw) is not None


def _render_number(value: float) -> str:
    # never emit exponent notation, so the rendered text always converts back
    text = format(Decimal(repr(value)), "f")
    if text.endswith(".0"):
        return text[:-2]
    return text


string = StringConverter(
    empty_raw="",
    empty_value="",
    convert=identity,
    render=identity,
)

number = StringConverter(
    empty_raw="",
    empty_impossible=True,
    raw_validate=_number_raw_validate,
    convert=float,
    render=_render_number,
)

integer = StringConverter(
    empty_raw="",
    empty_impossible=True,
    raw_validate=lambda raw: INTEGER_REGEX.match(raw) is not None,
    convert=int,
    render=str,
)

boolean = Converter(
    empty_raw=False,
    convert=identity,
    render=identity,
    default_controlled=controlled.checked,
    never_required=True,
)


class DecimalConverter:
    """Bounded-precision decimal kept as text.

    Args:
        max_whole_digits: Maximum digits before the decimal separator
        decimal_places: Maximum digits after the decimal separator
        allow_negative: Accept a leading ``-``

    The stored value always uses ``.`` as decimal separator and carries no
    thousand separators; ConverterOptions control what the user types and sees.
    """
    empty_raw = ""
    never_required = False
    default_controlled = staticmethod(controlled.value)

    def __init__(self, max_whole_digits: int = 10, decimal_places: int = 2, allow_negative: bool = True):
        self.max_whole_digits = max_whole_digits
        self.decimal_places = decimal_places
        self.allow_negative = allow_negative
        sign = "-?" if allow_negative else ""
        self.regex = re.compile(
            rf"^{sign}(0|[1-9]\d{{0,{max_whole_digits - 1}}})(\.\d{{0,{decimal_places}}})?$"
        )

    def preprocess_raw(self, raw: str, options: Optional[ConverterOptions] = None) -> str:
        return raw.strip()

    def _normalize(self, raw: str, options: ConverterOptions) -> Optional[str]:
        """Strip thousand separators and normalise the decimal separator."""
        whole, has_separator, fraction = raw.partition(options.decimal_separator)
        if options.thousand_separator and options.thousand_separator in whole:
            groups = whole.lstrip("-").split(options.thousand_separator)
            if not (1 <= len(groups[0]) <= 3) or any(len(group) != 3 for group in groups[1:]):
                return None
            whole = whole.replace(options.thousand_separator, "")
        if has_separator:
            return f"{whole}.{fraction}"
        return whole

    def _raw_validate(self, normalized: str) -> bool:
        if normalized in ("", "."):
            return False
        if normalized.startswith("."):
            normalized = "0" + normalized
        return self.regex.match(normalized) is not None

    async def convert(self, raw: str, options: Optional[ConverterOptions] = None) -> ConversionResponse:
        options = options or DEFAULT_CONVERTER_OPTIONS
        normalized = self._normalize(raw, options)
        if normalized is None or not self._raw_validate(normalized):
            return CONVERSION_ERROR
        return ConversionValue(normalized)

    def render(self, value: str, options: Optional[ConverterOptions] = None) -> str:
        options = options or DEFAULT_CONVERTER_OPTIONS
        whole, has_separator, fraction = value.partition(".")
        if options.render_thousands:
            sign = "-" if whole.startswith("-") else ""
            digits = whole.lstrip("-")
            groups: List[str] = []
            while len(digits) > 3:
                groups.insert(0, digits[-3:])
                digits = digits[:-3]
            groups.insert(0, digits)
            whole = sign + options.thousand_separator.join(groups)
        if has_separator:
            return f"{whole}{options.decimal_separator}{fraction}"
        return whole


def decimal(max_whole_digits: int = 10, decimal_places: int = 2, allow_negative: bool = True) -> DecimalConverter:
    """Create a decimal converter. See DecimalConverter."""
    return DecimalConverter(max_whole_digits, decimal_places, allow_negative)


class StringMaybe:
    """Wrap a text converter so that empty input converts to ``None``."""
    empty_raw = ""
    never_required = False
    default_controlled = staticmethod(controlled.value)

    def __init__(self, converter):
        self.converter = converter

    def preprocess_raw(self, raw: str, options: Optional[ConverterOptions] = None) -> str:
        return raw.strip()

    async def convert(self, raw: str, options: Optional[ConverterOptions] = None) -> ConversionResponse:
        if raw.strip() == "":
            return ConversionValue(None)
        return await self.converter.convert(raw, options)

    def render(self, value: Any, options: Optional[ConverterOptions] = None) -> str:
        if value is None:
            return ""
        return self.converter.render(value, options)


def maybe(converter):
    """Make empty input collapse to ``None``.

    Works for text converters (empty string raw) and for record converters
    (``None`` raw). The wrapped converter is not consulted for empty input.
    """
    if isinstance(converter, (StringConverter, DecimalConverter)):
        return StringMaybe(converter)
    return Converter(
        empty_raw=None,
        empty_value=None,
        convert=identity,
        render=identity,
        default_controlled=controlled.object,
    )


maybe_null = maybe


def model(record_type: type) -> Converter:
    """Converter for selecting a whole record; ``None`` means nothing selected."""
    return Converter(
        empty_raw=None,
        empty_impossible=True,
        convert=identity,
        render=identity,
        validate=lambda value: isinstance(value, record_type),
        default_controlled=controlled.object,
    )


string_array = Converter(
    empty_raw=[],
    convert=list,
    render=list,
)

# Public name (converters.object); nothing in this module uses the builtin
object = Converter(
    empty_raw=None,
    convert=identity,
    render=identity,
)
