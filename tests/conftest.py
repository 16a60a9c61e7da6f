"""Pytest configuration and shared fixtures."""
import pytest
from dataclasses import dataclass, field
from typing import List, Optional

from formstate import Field, Form, RepeatingForm, SubForm, converters


@dataclass
class Address:
    """Nested record."""
    street: str = ""
    city: str = ""


@dataclass
class Item:
    """Row of a repeating form."""
    name: str = ""
    quantity: int = 0


@dataclass
class Order:
    """Record with a nested record and a list of records."""
    customer: str = ""
    total: float = 0.0
    address: Optional[Address] = None
    items: List[Item] = field(default_factory=list)


@pytest.fixture
def order_form():
    """Form over Order with a required customer and repeating items."""
    return Form(Order, {
        "customer": Field(converters.string, required=True),
        "total": Field(converters.number),
        "address": SubForm({
            "street": Field(converters.string),
            "city": Field(converters.string, required=True),
        }),
        "items": RepeatingForm({
            "name": Field(converters.string, required=True),
            "quantity": Field(converters.integer),
        }),
    })


@pytest.fixture
def order():
    """Order with an address and three items."""
    return Order(
        customer="Ada",
        total=12.5,
        address=Address(street="Main St 1", city="Springfield"),
        items=[Item("apple", 1), Item("pear", 2), Item("plum", 3)],
    )
