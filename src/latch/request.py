"""Guess a permission verb from an HTTP-style request descriptor.

Used by :meth:`LatchSet.mask_from_request <latch.latch_set.LatchSet.mask_from_request>`
to turn a REST request into a mask such as ``{"verb": "query"}``.

Verb table
----------
======== ======================= ==========
Method   ``params["id"]``        Verb
======== ======================= ==========
GET      absent / other          ``query``
GET      numeric (``"42"``)      ``get``
GET      ``"count"``             ``count``
GET      ``"meta"``              ``meta``
DELETE   present                 ``delete``
POST     absent                  ``create``
POST     present                 ``save``
======== ======================= ==========
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from latch.errors import UnclassifiableRequestError

logger = logging.getLogger(__name__)

_NUMERIC_ID = re.compile(r"[0-9]+")

_SPECIAL_GET_IDS: dict[str, str] = {
    "count": "count",
    "meta": "meta",
}


class RequestDescriptor(BaseModel):
    """Minimal view of an incoming request."""

    model_config = {"extra": "allow"}

    method: str
    params: dict[str, Any] | None = Field(default=None)

    @property
    def request_id(self) -> str | None:
        if not self.params:
            return None
        value = self.params.get("id")
        if value is None or value == "":
            return None
        return str(value)


def classify_request(request: RequestDescriptor | Mapping[str, Any]) -> str:
    """Return the permission verb implied by ``request``.

    Parameters
    ----------
    request:
        A :class:`RequestDescriptor` or a mapping with ``method`` and
        optional ``params``.

    Returns
    -------
    str
        One of ``query``, ``get``, ``count``, ``meta``, ``delete``,
        ``create`` or ``save``.

    Raises
    ------
    UnclassifiableRequestError
        If the descriptor is malformed or the method/id combination has no
        verb.
    """
    if not isinstance(request, RequestDescriptor):
        try:
            request = RequestDescriptor.model_validate(request)
        except ValidationError as exc:
            raise UnclassifiableRequestError(f"Invalid request descriptor: {exc}") from exc

    method = request.method.upper()
    request_id = request.request_id

    if method == "GET":
        if request_id is None:
            verb = "query"
        elif request_id in _SPECIAL_GET_IDS:
            verb = _SPECIAL_GET_IDS[request_id]
        elif _NUMERIC_ID.fullmatch(request_id):
            verb = "get"
        else:
            verb = "query"
    elif method == "DELETE" and request_id is not None:
        verb = "delete"
    elif method == "POST":
        verb = "create" if request_id is None else "save"
    else:
        raise UnclassifiableRequestError(
            f"No permission verb for method {request.method!r} with id {request_id!r}"
        )

    logger.debug("Classified %s id=%r as %r", method, request_id, verb)
    return verb
