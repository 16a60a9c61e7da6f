"""
Programmer-facing error types.

User input problems (required, conversion, validator failures) are never
raised: they surface as field-local messages. Everything here signals a
defect in how the library is being driven.
"""


class ConfigurationError(ValueError):
    """Raised synchronously at the call site for configuration or usage defects.

    Examples: mutually exclusive converter options, an unresolvable path,
    a non-numeric step at a repeating form, removing a value that is not in
    the list, calling a backend function that was never configured.
    """
