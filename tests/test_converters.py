"""Tests for the stock converters."""
from dataclasses import dataclass

import pytest

from formstate import CONVERSION_ERROR, ConversionValue, ConverterOptions, controlled, converters


async def check(converter, raw, expected, options=None):
    result = await converter.convert(raw, options)
    assert isinstance(result, ConversionValue), f"{raw!r} failed to convert"
    assert result.value == expected


async def fails(converter, raw, options=None):
    assert await converter.convert(raw, options) is CONVERSION_ERROR


@pytest.mark.asyncio
async def test_string_converter():
    await check(converters.string, "foo", "foo")
    await check(converters.string, "", "")
    assert converters.string.preprocess_raw("  foo ") == "foo"


@pytest.mark.asyncio
async def test_number_converter():
    await check(converters.number, "3", 3)
    await check(converters.number, "3.14", 3.14)
    await check(converters.number, ".14", 0.14)
    await check(converters.number, "19.14", 19.14)
    await check(converters.number, "19.", 19)
    await check(converters.number, "-3.14", -3.14)
    await fails(converters.number, "foo")
    await fails(converters.number, "1foo")
    await fails(converters.number, "")
    await fails(converters.number, "007")


def test_number_render():
    assert converters.number.render(3.0) == "3"
    assert converters.number.render(3.14) == "3.14"
    assert converters.number.render(1e-7) == "0.0000001"


@pytest.mark.asyncio
async def test_integer_converter():
    await check(converters.integer, "3", 3)
    await fails(converters.integer, "3.14")
    await fails(converters.integer, ".14")
    await check(converters.integer, "0", 0)
    await check(converters.integer, "-3", -3)
    await fails(converters.integer, "foo")
    await fails(converters.integer, "1foo")
    await fails(converters.integer, "")


@pytest.mark.asyncio
async def test_decimal_converter():
    decimal = converters.decimal(4, 2)
    await check(decimal, "3", "3")
    await check(decimal, "3.14", "3.14")
    await check(decimal, "43.14", "43.14")
    await check(decimal, "4313", "4313")
    await check(decimal, "-3.14", "-3.14")
    await check(decimal, "0", "0")
    await check(decimal, ".14", ".14")
    await check(decimal, "14.", "14.")
    await fails(decimal, "foo")
    await fails(decimal, "1foo")
    await fails(decimal, "")
    await fails(decimal, ".")
    await fails(decimal, "12345.34")
    await fails(decimal, "12.444")


@pytest.mark.asyncio
async def test_decimal_disallow_negative():
    decimal = converters.decimal(allow_negative=False)
    await check(decimal, "3.1", "3.1")
    await fails(decimal, "-3.1")


@pytest.mark.asyncio
async def test_decimal_with_separators():
    options = ConverterOptions(decimal_separator=",", thousand_separator=".", render_thousands=True)
    decimal = converters.decimal()
    await check(decimal, "36.365,20", "36365.20", options)
    await check(decimal, "1234,5", "1234.5", options)
    await fails(decimal, "36.36,20", options)
    assert decimal.render("36365.20", options) == "36.365,20"
    assert decimal.render("-1234567", options) == "-1.234.567"
    assert decimal.render("12.5", options) == "12,5"


@pytest.mark.asyncio
@pytest.mark.parametrize("converter, value", [
    (converters.number, 19.5),
    (converters.number, -0.25),
    (converters.number, 1e-7),
    (converters.integer, 42),
    (converters.decimal(4, 2), "12.40"),
    (converters.string, "text"),
])
async def test_render_then_convert_round_trip(converter, value):
    await check(converter, converter.render(value), value)


@pytest.mark.asyncio
async def test_maybe_number_converter():
    maybe_number = converters.maybe(converters.number)
    await check(maybe_number, "3", 3)
    await check(maybe_number, "", None)
    assert maybe_number.render(None) == ""
    assert maybe_number.render(3.0) == "3"


@pytest.mark.asyncio
async def test_maybe_decimal_converter():
    maybe_decimal = converters.maybe_null(converters.decimal(4, 2))
    await check(maybe_decimal, "  ", None)
    await check(maybe_decimal, "1.5", "1.5")
    await fails(maybe_decimal, "1.555")


@dataclass
class Color:
    name: str


@pytest.mark.asyncio
async def test_model_converter():
    converter = converters.model(Color)
    red = Color("red")
    await check(converter, red, red)
    await fails(converter, None)
    await fails(converter, "red")
    assert converter.default_controlled is controlled.object


@pytest.mark.asyncio
async def test_maybe_model_converter():
    converter = converters.maybe(converters.model(Color))
    await check(converter, None, None)
    red = Color("red")
    await check(converter, red, red)


@pytest.mark.asyncio
async def test_boolean_converter():
    await check(converters.boolean, True, True)
    await check(converters.boolean, False, False)
    assert converters.boolean.never_required
    assert converters.boolean.default_controlled is controlled.checked


@pytest.mark.asyncio
async def test_string_array_converter():
    result = await converters.string_array.convert(("a", "b"))
    assert result.value == ["a", "b"]
    assert isinstance(result.value, list)
    assert converters.string_array.render(["a"]) == ["a"]
