"""Tests for perch.http.body and perch.http.forms."""

import pytest

from perch.errors import BodyParseError, HandlerError
from perch.http.body import decode_body, media_type
from perch.http.forms import FormData, parse_urlencoded


class TestMediaType:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("application/json", "application/json"),
            ("application/json; charset=utf-8", "application/json"),
            ("Application/JSON", "application/json"),
            (None, ""),
            ("", ""),
        ],
    )
    def test_strips_parameters(self, header: str | None, expected: str) -> None:
        assert media_type(header) == expected


class TestDecodeBody:
    def test_json_object(self) -> None:
        assert decode_body(b'{"name": "ada", "tags": [1, 2]}', "application/json") == {
            "name": "ada",
            "tags": [1, 2],
        }

    def test_json_with_charset(self) -> None:
        assert decode_body(b"[1]", "application/json; charset=utf-8") == [1]

    def test_empty_json_body_is_none(self) -> None:
        assert decode_body(b"", "application/json") is None

    def test_malformed_json_raises_handler_error(self) -> None:
        with pytest.raises(BodyParseError) as exc_info:
            decode_body(b"{not json", "application/json")
        assert isinstance(exc_info.value, HandlerError)
        assert exc_info.value.content_type == "application/json"

    def test_invalid_utf8_json(self) -> None:
        with pytest.raises(BodyParseError):
            decode_body(b"\xff\xfe{", "application/json")

    def test_urlencoded(self) -> None:
        form = decode_body(b"name=ada+lovelace&lang=en", "application/x-www-form-urlencoded")
        assert isinstance(form, FormData)
        assert form["name"] == "ada lovelace"
        assert dict(form) == {"name": "ada lovelace", "lang": "en"}

    def test_other_types_stay_raw(self) -> None:
        assert decode_body(b"\x00\x01", "application/octet-stream") == b"\x00\x01"
        assert decode_body(b"plain", None) == b"plain"


class TestFormData:
    def test_repeated_keys(self) -> None:
        form = parse_urlencoded(b"tag=a&tag=b&empty=")
        assert form["tag"] == "b"
        assert form.get_list("tag") == ["a", "b"]
        assert form["empty"] == ""
        assert form.get("missing") is None
