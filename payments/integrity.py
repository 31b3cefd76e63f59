"""
Integrity tokens for the confirmation endpoint.

A token is an HS256 JWT bound to one (order_id, session_id) pair, issued when
the checkout bundle is built. A confirmation call must present the token that
was issued for exactly that order and session.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from payments.errors import IntegrityMismatch

ALGORITHM = "HS256"
ACTION = "zoho_confirm_payment"


class IntegritySigner:
    def __init__(
        self,
        secret: str,
        ttl: timedelta = timedelta(days=1),
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.secret = secret
        self.ttl = ttl
        self.clock = clock

    def issue(self, order_id: int, session_id: str) -> str:
        now = self.clock()
        claims = {
            "act": ACTION,
            "oid": str(order_id),
            "sid": session_id,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(claims, self.secret, algorithm=ALGORITHM)

    def verify(self, token: str, order_id: int, session_id: str) -> None:
        """Raise ValidationError unless ``token`` was issued for this order and session."""
        if not token:
            raise IntegrityMismatch("integrity token missing", reason="Security check failed")
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise IntegrityMismatch(
                "integrity token invalid", reason="Security check failed"
            ) from exc

        if claims.get("exp", 0) < int(self.clock().timestamp()):
            raise IntegrityMismatch("integrity token expired", reason="Security check failed")
        if (
            claims.get("act") != ACTION
            or claims.get("oid") != str(order_id)
            or claims.get("sid") != session_id
        ):
            raise IntegrityMismatch(
                "integrity token not bound to this order/session",
                reason="Security check failed",
            )
