"""
Unit tests for status line parsing.
"""

import pytest

from httptunnel.http.status_line import parse_status_line


class TestParseStatusLine:
    """Tests for parse_status_line()."""

    def test_typical(self):
        """Test a normal status line."""
        line = parse_status_line(b"HTTP/1.1 407 Proxy Authentication Required")

        assert line.major == 1
        assert line.minor == 1
        assert line.status_code == 407
        assert line.reason == "Proxy Authentication Required"
        assert line.status_text == "407 Proxy Authentication Required"

    def test_no_reason(self):
        """Test that the reason phrase is optional."""
        line = parse_status_line(b"HTTP/1.1 200")

        assert line.status_code == 200
        assert line.reason == ""
        assert line.is_success

    def test_status_offset(self):
        """Test that status_offset points at the status code."""
        raw = b"HTTP/1.0 403 Forbidden"
        line = parse_status_line(raw)

        assert raw[line.status_offset:] == b"403 Forbidden"

    @pytest.mark.parametrize("raw", [
        b"",
        b"SSH-2.0-OpenSSH_9.0",
        b"HTTP/1.1",
        b"HTTP/1.1 20 OK",
        b"HTTP/1.1 2000 OK",
        b"HTTP/x.1 200 OK",
        b"HTTP/1.1 abc OK",
        b"HTTP/1.1200 OK",
    ])
    def test_malformed(self, raw: bytes):
        """Test that non-HTTP lines are rejected."""
        assert parse_status_line(raw) is None

    @pytest.mark.parametrize("raw,closes", [
        (b"HTTP/0.9 200 OK", True),
        (b"HTTP/1.0 200 OK", True),
        (b"HTTP/1.1 200 OK", False),
        (b"HTTP/2.0 200 OK", False),
    ])
    def test_closes_by_default(self, raw: bytes, closes: bool):
        """Test the pre-1.1 close-by-default rule."""
        assert parse_status_line(raw).closes_by_default is closes

    @pytest.mark.parametrize("code,success", [(199, False), (200, True), (299, True), (300, False)])
    def test_success_range(self, code: int, success: bool):
        """Test the 2xx success range."""
        line = parse_status_line(f"HTTP/1.1 {code} X".encode())
        assert line.is_success is success
