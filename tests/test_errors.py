"""Tests for perch.errors: exception hierarchy."""

import pytest

from perch.errors import (
    BodyParseError,
    ConfigurationError,
    HandlerError,
    HTTPError,
    InvalidListenConfiguration,
    PerchError,
    RouteNotFound,
    StaticFileIOError,
    StaticFileMissing,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [
            ConfigurationError,
            InvalidListenConfiguration,
            HTTPError,
            RouteNotFound,
            HandlerError,
            BodyParseError,
            StaticFileMissing,
            StaticFileIOError,
        ],
    )
    def test_all_are_perch_errors(self, cls: type) -> None:
        assert issubclass(cls, PerchError)

    def test_invalid_listen_is_value_error(self) -> None:
        assert issubclass(InvalidListenConfiguration, ValueError)
        assert issubclass(InvalidListenConfiguration, ConfigurationError)

    def test_body_parse_error_is_handler_error(self) -> None:
        assert issubclass(BodyParseError, HandlerError)


class TestHTTPError:
    def test_str_with_detail(self) -> None:
        assert str(HTTPError(status=418, detail="teapot")) == "418: teapot"

    def test_str_without_detail(self) -> None:
        assert str(HTTPError(status=503)) == "503"

    def test_route_not_found(self) -> None:
        exc = RouteNotFound()
        assert exc.status == 404
        assert exc.detail == "Not Found"

    def test_raisable(self) -> None:
        with pytest.raises(HTTPError) as exc_info:
            raise RouteNotFound("No route matches GET '/x'")
        assert exc_info.value.status == 404


class TestHandlerError:
    def test_wraps_value(self) -> None:
        exc = HandlerError({"code": 7})
        assert exc.value == {"code": 7}
        assert "{'code': 7}" in str(exc)

    def test_custom_message(self) -> None:
        assert str(HandlerError("x", "went wrong")) == "went wrong"

    def test_body_parse_error(self) -> None:
        cause = ValueError("Expecting value")
        exc = BodyParseError("application/json", cause)
        assert exc.content_type == "application/json"
        assert exc.value is cause
        assert "Malformed application/json body" in str(exc)


class TestStaticErrors:
    def test_missing(self) -> None:
        exc = StaticFileMissing("/srv/a.txt")
        assert exc.path == "/srv/a.txt"
        assert "/srv/a.txt" in str(exc)

    def test_io_error_keeps_cause(self) -> None:
        cause = PermissionError("denied")
        exc = StaticFileIOError("/srv/a.txt", cause)
        assert exc.cause is cause
        assert "denied" in str(exc)
