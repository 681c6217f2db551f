"""Scoped HMAC tokens derived from the hive credential.

The credential never crosses the wire. Requests carry a ``hive_token``
instead: ``{timestamp_ms}.{hex_signature}`` where the signature covers the
timestamp and a scope. Outbound commands are scoped to the receiving node id,
so a token captured from one node cannot be replayed against another. Calls
into the coordinator's own API use API_SCOPE.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time

logger = logging.getLogger(__name__)

API_SCOPE = "hive-api"

# Tokens are valid for 60 seconds to account for clock skew.
TOKEN_TTL_S = 60


def _signature(secret: str, ts: int, scope: str) -> str:
    message = f"{ts}:{scope}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def sign_hive_token(secret: str, scope: str = API_SCOPE, timestamp_ms: int | None = None) -> str:
    """Create a token for ``scope`` signed with ``secret``."""
    ts = timestamp_ms or int(time.time() * 1000)
    return f"{ts}.{_signature(secret, ts, scope)}"


def verify_hive_token(token: str, secret: str, scope: str = API_SCOPE) -> bool:
    """True if the token was signed for ``scope`` with ``secret`` and is within TTL."""
    try:
        ts_str, sep, sig = token.partition(".")
        if not sep:
            return False
        ts = int(ts_str)

        age_ms = abs(int(time.time() * 1000) - ts)
        if age_ms > TOKEN_TTL_S * 1000:
            logger.debug("Hive token expired: age=%dms", age_ms)
            return False

        return hmac.compare_digest(sig.encode(), _signature(secret, ts, scope).encode())
    except Exception:
        logger.debug("Hive token verification failed", exc_info=True)
        return False
