"""
Unit tests for secret buffers and the Basic encoder.
"""

import base64
import copy
import pickle

import pytest

from httptunnel.auth.basic import (
    base64_encode_into,
    basic_authorization_header,
    encode_atom,
    write_basic_credentials,
)
from httptunnel.auth.secret import Credentials, SecretBuffer, to_secret_bytes


class TestSecretBuffer:
    """Tests for SecretBuffer."""

    def test_view(self):
        """Test reading the contents through a view."""
        secret = SecretBuffer(b"hunter2")

        with secret.view() as data:
            assert data == b"hunter2"
            assert data.readonly

    def test_replace_zeroes_old_storage(self):
        """Test that replace() overwrites the previous bytes."""
        secret = SecretBuffer(b"old-password")
        storage = secret._data

        secret.replace(b"new")

        assert storage is secret._data
        with secret.view() as data:
            assert data == b"new"

    def test_wipe_zeroes_in_place(self):
        """Test that wipe() zeroes before emptying."""
        secret = SecretBuffer(b"abc")
        seen = []

        class Spy(bytearray):
            def clear(self):
                seen.append(bytes(self))
                super().clear()

        secret._data = Spy(b"abc")
        secret.wipe()

        assert seen == [b"\x00\x00\x00"]
        assert len(secret) == 0

    def test_repr_hides_contents(self):
        """Test that repr never shows the secret."""
        assert "hunter2" not in repr(SecretBuffer(b"hunter2"))
        assert repr(SecretBuffer(b"hunter2")) == "<SecretBuffer 7 bytes>"

    def test_copy_refused(self):
        """Test that copies are refused."""
        secret = SecretBuffer(b"x")

        with pytest.raises(TypeError):
            copy.copy(secret)
        with pytest.raises(TypeError):
            copy.deepcopy(secret)
        with pytest.raises(TypeError):
            pickle.dumps(secret)


class TestCredentials:
    """Tests for Credentials."""

    def test_present(self):
        """Test that either field makes credentials present."""
        assert not Credentials().present
        assert Credentials(username=b"alice").present
        assert Credentials(password=b"pw").present

    def test_wipe(self):
        """Test wiping both fields."""
        creds = Credentials(b"alice", b"pw")
        creds.wipe()

        assert len(creds.username) == 0
        assert len(creds.password) == 0
        assert not creds.present

    def test_to_secret_bytes(self):
        """Test credential normalisation."""
        assert to_secret_bytes(None) == b""
        assert to_secret_bytes("pässword") == "pässword".encode("utf-8")
        assert to_secret_bytes(bytearray(b"x")) == b"x"


class TestBase64:
    """Tests for the Basic encoder."""

    def test_encode_atom_padding(self):
        """Test padding of short final groups."""
        out = bytearray(4)

        encode_atom(bytearray(b"Man"), out)
        assert out == b"TWFu"
        encode_atom(bytearray(b"Ma"), out)
        assert out == b"TWE="
        encode_atom(bytearray(b"M"), out)
        assert out == b"TQ=="

    @pytest.mark.parametrize("plaintext", [
        b"",
        b"a",
        b"ab",
        b"abc",
        b"user:pass",         # 9  ≡ 0 (mod 3)
        b"alice:hunter2",     # 13 ≡ 1 (mod 3)
        b"bob:secret",        # 10 ≡ 1 (mod 3)
        b"carol:s3cr3t!",     # 13
        b"dave:pw",           # 7  ≡ 1 (mod 3)
        b"eve:p",             # 5  ≡ 2 (mod 3)
        bytes(range(256)),
    ])
    def test_matches_stdlib_and_round_trips(self, plaintext: bytes):
        """Test against base64.b64encode and decode back."""
        out = bytearray()
        base64_encode_into(bytearray(plaintext), out)

        assert bytes(out) == base64.b64encode(plaintext)
        assert base64.b64decode(bytes(out)) == plaintext
        assert len(out) % 4 == 0

    def test_caller_buffer_untouched(self):
        """Test that only internal scratch copies are scrubbed."""
        data = bytearray(b"user:pass")
        out = bytearray()
        base64_encode_into(data, out)

        assert data == b"user:pass"

    def test_write_basic_credentials(self):
        """Test username:password encoding."""
        out = bytearray()
        write_basic_credentials(SecretBuffer(b"Aladdin"), SecretBuffer(b"open sesame"), out)

        assert out == b"QWxhZGRpbjpvcGVuIHNlc2FtZQ=="

    def test_empty_username(self):
        """Test that an empty username still gets the colon."""
        out = bytearray()
        write_basic_credentials(SecretBuffer(b""), SecretBuffer(b"pw"), out)

        assert base64.b64decode(bytes(out)) == b":pw"

    def test_header_line(self):
        """Test the full header line."""
        header = basic_authorization_header(SecretBuffer(b"user"), SecretBuffer(b"pass"))

        assert header == b"Proxy-Authorization: Basic dXNlcjpwYXNz\r\n"
