"""
Request body encoding.

Picks an encoding strategy from the declared ``Content-Type`` header and
turns the caller's payload into bytes. Everything here is stateless and
safe to share between threads.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence
from urllib.parse import urlencode

from .exceptions import DataShapeError, EncodingError, InvalidHeaderError

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# Mapping of header/query name -> ordered values
MultiValueMapping = Mapping[str, Sequence[str]]


class Encoding(str, Enum):
    """Supported request body encodings."""
    JSON = "json"
    FORM = "form"


def canonical_header_key(key: str) -> str:
    """
    Return the MIME canonical form of a header name.

    The first letter and every letter after a hyphen are upper-cased, the
    rest lower-cased. Used only for content-type detection; names sent on
    the wire keep the caller's case.

    Example:
        >>> canonical_header_key("content-TYPE")
        'Content-Type'
    """
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


def is_string_list(values: Any) -> bool:
    """True for a list or tuple of str. A bare str does not count."""
    return isinstance(values, (list, tuple)) and all(isinstance(v, str) for v in values)


def select_encoding(headers: Optional[MultiValueMapping]) -> Encoding:
    """
    Choose the body encoding for a header mapping.

    Only the first declared ``Content-Type`` value is inspected. A value
    equal to or containing ``application/json`` selects JSON, one equal to
    or containing ``application/x-www-form-urlencoded`` selects form
    encoding. Anything else, including no header at all, falls back to JSON.

    Args:
        headers: Header name -> list of values

    Returns:
        Selected Encoding

    Raises:
        InvalidHeaderError: Content-Type values are not a list of str
    """
    if not headers:
        return Encoding.JSON

    content_types = None
    for key, values in headers.items():
        if canonical_header_key(key) == "Content-Type":
            if not is_string_list(values):
                raise InvalidHeaderError(key, "values must be a list of strings")
            content_types = values
            break

    if not content_types:
        return Encoding.JSON

    declared = content_types[0].strip().lower()
    if JSON_CONTENT_TYPE in declared:
        return Encoding.JSON
    if FORM_CONTENT_TYPE in declared:
        return Encoding.FORM

    return Encoding.JSON


@dataclass(frozen=True)
class EncodedBody:
    """Encoded request body and the content type it was encoded as."""
    body: bytes = b""
    content_type: Optional[str] = None

    def __bool__(self) -> bool:
        return bool(self.body)


EMPTY_BODY = EncodedBody()


def _is_empty(payload: Any) -> bool:
    if payload is None:
        return True
    return isinstance(payload, (Mapping, list, tuple)) and len(payload) == 0


class JSONEncoder:
    """Encode any JSON-serializable payload."""

    encoding = Encoding.JSON
    content_type = JSON_CONTENT_TYPE

    def encode(self, payload: Any) -> EncodedBody:
        """
        Serialize payload as UTF-8 JSON.

        Args:
            payload: Objects, arrays, strings, numbers, booleans or None

        Returns:
            EncodedBody (empty for None or an empty container)

        Raises:
            EncodingError: Circular reference, unsupported type or NaN/Infinity
        """
        if _is_empty(payload):
            return EMPTY_BODY

        try:
            body = json.dumps(payload, allow_nan=False, ensure_ascii=False)
        except (TypeError, ValueError, RecursionError) as e:
            raise EncodingError(f"Cannot encode payload as JSON: {e}", cause=e) from e

        return EncodedBody(body.encode("utf-8"), self.content_type)


class FormEncoder:
    """
    Encode ``{key: [value, ...]}`` payloads as application/x-www-form-urlencoded.

    Keys are emitted in the mapping's insertion order; each key is repeated
    once per value.
    """

    encoding = Encoding.FORM
    content_type = FORM_CONTENT_TYPE

    def encode(self, payload: Any) -> EncodedBody:
        """
        Serialize payload as form data.

        Raises:
            DataShapeError: Payload is not a str -> list-of-str mapping
        """
        if payload is None:
            return EMPTY_BODY

        self._check_shape(payload)
        if not payload:
            return EMPTY_BODY

        pairs = [(key, value) for key, values in payload.items() for value in values]
        return EncodedBody(urlencode(pairs).encode("ascii"), self.content_type)

    @staticmethod
    def _check_shape(payload: Any) -> None:
        if not isinstance(payload, Mapping):
            raise DataShapeError(payload_type=type(payload))

        for key, values in payload.items():
            if not isinstance(key, str) or not is_string_list(values):
                raise DataShapeError(payload_type=type(values))


_ENCODERS = {
    Encoding.JSON: JSONEncoder(),
    Encoding.FORM: FormEncoder(),
}


def encoder_for(encoding: Encoding):
    """Return the shared encoder instance for an Encoding."""
    return _ENCODERS[encoding]


def encode_payload(headers: Optional[MultiValueMapping], payload: Any) -> EncodedBody:
    """
    Select an encoding from headers and encode payload with it.

    Example:
        >>> encode_payload({"Content-Type": ["application/x-www-form-urlencoded"]},
        ...                {"hello": ["world"]}).body
        b'hello=world'
    """
    encoding = select_encoding(headers)
    logger.debug("Encoding request body as %s", encoding.value)
    return encoder_for(encoding).encode(payload)
