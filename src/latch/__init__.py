"""latch: structured permission tokens and sets.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import latch
>>> latches = latch.LatchSet().add("acme-co::sales::{create,manage}")
>>> latches.has("acme-co::sales::manage")
True
>>> latch.Latch("foo::@::@").mask({"noun": "bar", "verb": "baz"}).to_string()
'foo::bar::baz'
"""
from __future__ import annotations

__version__: str = "0.1.0"

from latch.errors import (
    AmbiguousOptionCallError,
    InvalidInputError,
    LatchConfigError,
    LatchError,
    ParseError,
    UnclassifiableRequestError,
    UnknownHandlerError,
    UnknownSettingError,
)
from latch.expansion import Expander, expand_braces
from latch.handlers import DefaultFormat, HandlerBundle, LatchFormat, RegexFormat
from latch.latch import Latch
from latch.latch_set import LatchSet, LatchSetSettings
from latch.loader import LatchSetLoader
from latch.request import RequestDescriptor, classify_request

__all__ = [
    "__version__",
    # Core types
    "Latch",
    "LatchSet",
    "LatchSetSettings",
    # Formats
    "DefaultFormat",
    "HandlerBundle",
    "LatchFormat",
    "RegexFormat",
    # Collaborators
    "Expander",
    "RequestDescriptor",
    "classify_request",
    "expand_braces",
    # Loader
    "LatchSetLoader",
    # Errors
    "AmbiguousOptionCallError",
    "InvalidInputError",
    "LatchConfigError",
    "LatchError",
    "ParseError",
    "UnclassifiableRequestError",
    "UnknownHandlerError",
    "UnknownSettingError",
]
