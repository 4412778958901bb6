"""
Credential handling: secret buffers and the Basic scheme encoder.
"""

from .basic import base64_encode_into, basic_authorization_header, write_basic_credentials
from .secret import Credentials, SecretBuffer, to_secret_bytes

__all__ = [
    "Credentials",
    "SecretBuffer",
    "to_secret_bytes",
    "base64_encode_into",
    "basic_authorization_header",
    "write_basic_credentials",
]
