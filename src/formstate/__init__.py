"""
Form state management for hierarchical records.

This package keeps a live, validated, two-way-bound view over a record tree
(records, nested records and lists of records) and reconciles it with an
asynchronous remote authority without letting stale responses overwrite
fresher user input.

Key Features:
- Declarative definitions (Field, SubForm, RepeatingForm, Group)
- Raw <-> value conversion with validation on every edit
- Accessor tree mirroring the record tree, renumbered in place on list edits
- Access control (disabled/hidden/read_only/required) resolved top-down
- Debounced background processing with generation-based conflict resolution

Quick Start:
    >>> from dataclasses import dataclass
    >>> from formstate import Form, Field, converters
    >>>
    >>> @dataclass
    ... class Person:
    ...     name: str
    ...     age: int
    >>>
    >>> form = Form(Person, {
    ...     "name": Field(converters.string, required=True),
    ...     "age": Field(converters.integer),
    ... })
    >>> state = form.state(Person(name="Ada", age=36), process=check_person)
    >>> await state.field("age").set_raw("37")

Architecture:
    user input -> Converter (raw -> value) -> tree patch via accessor
    -> ChangeTracker marks path -> debounce -> Backend.process
    -> result merged back, except into paths edited since the call started

Modules:
    - converter / converters: raw <-> value conversion
    - form: definitions
    - field_accessor / form_accessor / repeating_form_accessor: accessor tree
    - state: the editing session (FormState)
    - change_tracker: debounced change tracking
    - backend: remote synchronisation
    - tree / paths: data tree patching and addressing
    - draft: all-fields-optional record types for editing
"""

from formstate import controlled, converters
from formstate.backend import AccessUpdate, Backend, ProcessResult, Update
from formstate.change_tracker import ChangeTracker
from formstate.converter import (
    CONVERSION_ERROR,
    ConversionValue,
    ConvertError,
    Converter,
    ConverterOptions,
)
from formstate.draft import make_draft_type
from formstate.errors import ConfigurationError
from formstate.field_accessor import FieldAccessor
from formstate.form import (
    Field,
    Form,
    Group,
    ProcessValue,
    RepeatingForm,
    SubForm,
    ValidationMessage,
)
from formstate.form_accessor import FormAccessorBase, GroupAccessor, SubFormAccessor
from formstate.paths import path_to_fieldref, path_to_steps, steps_to_path
from formstate.repeating_form_accessor import RepeatingFormAccessor, RepeatingFormIndexedAccessor
from formstate.state import FormState
from formstate.tree import apply_patch, off_patch, on_patch, resolve_path
from formstate.validation_messages import Message, ValidationInfo

__all__ = [
    # Conversion
    'controlled',
    'converters',
    'CONVERSION_ERROR',
    'ConversionValue',
    'ConvertError',
    'Converter',
    'ConverterOptions',
    # Definitions
    'Field',
    'Form',
    'Group',
    'ProcessValue',
    'RepeatingForm',
    'SubForm',
    'ValidationMessage',
    'make_draft_type',
    # Accessors
    'FieldAccessor',
    'FormAccessorBase',
    'GroupAccessor',
    'SubFormAccessor',
    'RepeatingFormAccessor',
    'RepeatingFormIndexedAccessor',
    'FormState',
    # Remote synchronisation
    'AccessUpdate',
    'Backend',
    'ChangeTracker',
    'Message',
    'ProcessResult',
    'Update',
    'ValidationInfo',
    # Tree
    'apply_patch',
    'off_patch',
    'on_patch',
    'resolve_path',
    'path_to_fieldref',
    'path_to_steps',
    'steps_to_path',
    # Errors
    'ConfigurationError',
]

__version__ = '1.0.0'
__description__ = 'Validated form state over record trees with remote synchronisation'
