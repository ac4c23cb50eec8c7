"""
PKCE (RFC 7636) verifier and challenge generation. S256 only.
"""

import base64
import secrets

from authlib.oauth2.rfc7636 import create_s256_code_challenge

from social_login.core.domain import PKCEPair
from social_login.core.exceptions import EntropyError


VERIFIER_BYTES = 32


def base64url(data: bytes) -> str:
    """Base64url-encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_pkce() -> PKCEPair:
    """
    Generate a fresh verifier/challenge pair.

    The verifier is 32 random bytes, base64url-encoded (43 chars).
    The challenge is the SHA-256 of the verifier's encoded string,
    which is what providers hash on their side.

    Raises:
        EntropyError: If the OS random source is unavailable
    """
    try:
        raw = secrets.token_bytes(VERIFIER_BYTES)
    except (OSError, NotImplementedError) as e:
        raise EntropyError(f"Random source unavailable: {e}") from e

    verifier = base64url(raw)
    return PKCEPair(verifier=verifier, challenge=create_s256_code_challenge(verifier))
