"""Тесты выбора кодирования и encoders."""

import json
from urllib.parse import parse_qs

import pytest

from requestor.core.encoding import (
    Encoding,
    EncodedBody,
    FormEncoder,
    JSONEncoder,
    canonical_header_key,
    encode_payload,
    encoder_for,
    select_encoding,
)
from requestor.core.exceptions import DataShapeError, EncodingError, InvalidHeaderError

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# canonical_header_key
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@pytest.mark.parametrize("raw,expected", [
    ("content-type", "Content-Type"),
    ("CONTENT-TYPE", "Content-Type"),
    ("Content-type", "Content-Type"),
    ("x-request-id", "X-Request-Id"),
    ("accept", "Accept"),
])
def test_canonical_header_key(raw, expected):
    assert canonical_header_key(raw) == expected

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# select_encoding
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def test_select_encoding_no_headers_defaults_to_json():
    assert select_encoding(None) is Encoding.JSON
    assert select_encoding({}) is Encoding.JSON


def test_select_encoding_without_content_type():
    assert select_encoding({"Accept": ["*/*"]}) is Encoding.JSON


def test_select_encoding_json():
    assert select_encoding({"Content-Type": ["application/json"]}) is Encoding.JSON


def test_select_encoding_form():
    headers = {"Content-Type": ["application/x-www-form-urlencoded"]}
    assert select_encoding(headers) is Encoding.FORM


def test_select_encoding_is_case_insensitive_on_key():
    headers = {"content-type": ["application/x-www-form-urlencoded"]}
    assert select_encoding(headers) is Encoding.FORM


def test_select_encoding_substring_match():
    headers = {"Content-Type": ["application/x-www-form-urlencoded; charset=utf-8"]}
    assert select_encoding(headers) is Encoding.FORM

    headers = {"Content-Type": ["application/json; charset=utf-8"]}
    assert select_encoding(headers) is Encoding.JSON


def test_select_encoding_only_first_value_counts():
    headers = {"Content-Type": ["text/plain", "application/x-www-form-urlencoded"]}
    assert select_encoding(headers) is Encoding.JSON


def test_select_encoding_unknown_type_defaults_to_json():
    assert select_encoding({"Content-Type": ["text/xml"]}) is Encoding.JSON


def test_select_encoding_empty_value_list_defaults_to_json():
    assert select_encoding({"Content-Type": []}) is Encoding.JSON


@pytest.mark.parametrize("value", [
    "application/x-www-form-urlencoded",
    [b"application/json"],
    None,
])
def test_select_encoding_rejects_non_string_list(value):
    with pytest.raises(InvalidHeaderError, match="list of strings"):
        select_encoding({"content-type": value})

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# JSONEncoder
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestJSONEncoder:
    """JSON encoding."""

    def test_encode_mapping(self):
        encoded = JSONEncoder().encode({"hello": "world"})
        assert json.loads(encoded.body) == {"hello": "world"}
        assert encoded.content_type == "application/json"

    @pytest.mark.parametrize("payload", [
        {"nested": {"list": [1, 2.5, True, None, "x"]}},
        [1, "two", {"three": 3}],
        "plain string",
        42,
        False,
        {"unicode": "привет"},
    ])
    def test_roundtrip(self, payload):
        assert json.loads(JSONEncoder().encode(payload).body) == payload

    def test_none_payload_has_no_body(self):
        encoded = JSONEncoder().encode(None)
        assert encoded.body == b""
        assert not encoded

    def test_empty_containers_have_no_body(self):
        assert JSONEncoder().encode({}).body == b""
        assert JSONEncoder().encode([]).body == b""

    def test_unsupported_type(self):
        with pytest.raises(EncodingError, match="Cannot encode payload as JSON"):
            JSONEncoder().encode({"when": object()})

    def test_circular_reference(self):
        payload = {}
        payload["self"] = payload
        with pytest.raises(EncodingError) as exc_info:
            JSONEncoder().encode(payload)
        assert exc_info.value.fatal is True
        assert exc_info.value.cause is not None

    def test_nan_rejected(self):
        with pytest.raises(EncodingError):
            JSONEncoder().encode({"value": float("nan")})

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# FormEncoder
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestFormEncoder:
    """Form encoding."""

    def test_single_value(self):
        encoded = FormEncoder().encode({"hello": ["world"]})
        assert encoded.body == b"hello=world"
        assert encoded.content_type == "application/x-www-form-urlencoded"

    def test_repeated_key_per_value(self):
        encoded = FormEncoder().encode({"tag": ["a", "b"], "x": ["1"]})
        assert encoded.body == b"tag=a&tag=b&x=1"

    def test_insertion_order_is_kept(self):
        encoded = FormEncoder().encode({"zeta": ["1"], "alpha": ["2"]})
        assert encoded.body == b"zeta=1&alpha=2"

    def test_values_are_percent_encoded(self):
        encoded = FormEncoder().encode({"q": ["a b&c=d/é"]})
        assert parse_qs(encoded.body.decode("ascii")) == {"q": ["a b&c=d/é"]}
        assert b" " not in encoded.body

    def test_roundtrip(self):
        payload = {"hello": ["world"], "multi": ["1", "2", "3"], "empty": [""]}
        decoded = parse_qs(FormEncoder().encode(payload).body.decode("ascii"),
                           keep_blank_values=True)
        assert decoded == payload

    def test_tuple_values_accepted(self):
        assert FormEncoder().encode({"a": ("1", "2")}).body == b"a=1&a=2"

    def test_none_and_empty_have_no_body(self):
        assert FormEncoder().encode(None).body == b""
        assert FormEncoder().encode({}).body == b""

    @pytest.mark.parametrize("payload", [
        {"hello": "world"},
        {"hello": [1]},
        {1: ["x"]},
        ["hello", "world"],
        "hello=world",
        {"hello": {"nested": ["x"]}},
    ])
    def test_wrong_shape(self, payload):
        with pytest.raises(DataShapeError, match="string-to-string-list mapping"):
            FormEncoder().encode(payload)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# encoder_for / encode_payload
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def test_encoder_for_returns_shared_instances():
    assert isinstance(encoder_for(Encoding.JSON), JSONEncoder)
    assert isinstance(encoder_for(Encoding.FORM), FormEncoder)
    assert encoder_for(Encoding.JSON) is encoder_for(Encoding.JSON)


def test_encode_payload_uses_selected_encoding():
    form = encode_payload({"Content-Type": ["application/x-www-form-urlencoded"]},
                          {"hello": ["world"]})
    assert form == EncodedBody(b"hello=world", "application/x-www-form-urlencoded")

    default = encode_payload(None, {"hello": "world"})
    assert json.loads(default.body) == {"hello": "world"}


def test_encode_payload_form_rejects_json_shape():
    with pytest.raises(DataShapeError):
        encode_payload({"Content-Type": ["application/x-www-form-urlencoded"]},
                       {"hello": "world"})
