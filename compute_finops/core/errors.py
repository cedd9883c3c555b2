"""
Error types raised by the financial engine.

Both errors subclass ValueError and carry the offending field and value
so callers can report precisely what was rejected.
"""

from typing import Any


class InvalidInputError(ValueError):
    """Raised when a usage record or call argument is malformed."""
    def __init__(self, field: str, value: Any, message: str):
        super().__init__(f"{field}: {message} (got {value!r})")
        self.field = field
        self.value = value
        self.message = message


class ConfigurationError(ValueError):
    """Raised when a threshold, index or knob is outside its documented range."""
    def __init__(self, field: str, value: Any, message: str):
        super().__init__(f"{field}: {message} (got {value!r})")
        self.field = field
        self.value = value
        self.message = message
