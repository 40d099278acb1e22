"""Error taxonomy for latch.

Every error raised by this package derives from :class:`LatchError`, so
callers at a trust boundary can reject malformed permission input with a
single ``except LatchError`` clause. Each subclass also derives from the
closest builtin exception so generic handlers keep working.
"""
from __future__ import annotations


class LatchError(Exception):
    """Base class for all latch errors."""


class ParseError(LatchError, ValueError):
    """Raised when a string does not match the active parser's grammar.

    Attributes
    ----------
    value:
        The raw string that failed to parse.
    """

    def __init__(self, value: str, expected: str | None = None) -> None:
        self.value = value
        hint = f' - expected format "{expected}"' if expected else ""
        super().__init__(f"Invalid input format {value!r}{hint}")


class InvalidInputError(LatchError, TypeError):
    """Raised when a latch is set from something other than a string or mapping."""


class UnknownSettingError(LatchError, KeyError):
    """Raised when ``LatchSet.set_option`` is given an unrecognised name."""

    def __init__(self, name: str, known: list[str]) -> None:
        self.name = name
        super().__init__(f"Unknown setting {name!r}. Known settings: {known}.")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0])


class UnknownHandlerError(LatchError, KeyError):
    """Raised when a handler slot name is not part of the handler bundle."""

    def __init__(self, name: str, known: list[str]) -> None:
        self.name = name
        super().__init__(f"Unknown handler {name!r}. Known handlers: {known}.")

    def __str__(self) -> str:
        return str(self.args[0])


class AmbiguousOptionCallError(LatchError, TypeError):
    """Raised when ``set_option`` receives a mapping and a value together."""


class UnclassifiableRequestError(LatchError, ValueError):
    """Raised when a request descriptor cannot be mapped to a permission verb."""


class LatchConfigError(LatchError, ValueError):
    """Raised when a latch set configuration is malformed or invalid.

    Attributes
    ----------
    config_path:
        The path to the config file that caused the error, if known.
    """

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")
