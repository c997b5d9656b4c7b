"""
services/auth_service.py — The admin credential gate.

Responsibilities:
  - Check a submitted password against the single shared admin password
  - Issue a signed, time-limited admin token (JWT, HS256)
  - Verify tokens presented in the Authorization header

Token design:
  - Claims: isAdmin (always True), iat, exp = iat + 24 h by default.
  - Signed with one shared secret. There are no per-admin identities,
    roles or scopes; holding a valid token is the whole authorization model.
  - Stateless: nothing is stored server-side, so a token cannot be revoked
    before it expires. Logging out is the client discarding the token.

Configuration is passed in explicitly as a GateConfig. The gate never reads
os.environ or flask.current_app; create_app() builds it from app.config and
tests build it from fixture secrets.

Password comparison:
  - ADMIN_PASSWORD may be a bcrypt hash ($2a$/$2b$/$2y$ prefix), checked with
    bcrypt.checkpw, or plain text, checked with hmac.compare_digest.
  - The raw password is never logged.
  - There is no lockout or rate limiting on failed attempts.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Mapping

import bcrypt
import jwt

from campledger.app.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


@dataclass(frozen=True)
class GateConfig:
    """Everything the gate needs to issue and verify admin tokens."""

    admin_password: str
    secret_key: str
    algorithm: str = "HS256"
    token_ttl: timedelta = timedelta(hours=24)

    @classmethod
    def from_mapping(cls, config: Mapping) -> "GateConfig":
        """Builds a GateConfig from a Flask config (or any mapping)."""
        return cls(
            admin_password=config.get("ADMIN_PASSWORD", ""),
            secret_key=config["JWT_SECRET_KEY"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            token_ttl=config.get("ADMIN_TOKEN_EXPIRES", timedelta(hours=24)),
        )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CredentialGate:
    """
    Issues and verifies admin tokens.

    Usage:
        gate = CredentialGate(GateConfig.from_mapping(app.config))
        token = gate.issue(password)      # AppError(INVALID_CREDENTIALS) on mismatch
        claims = gate.verify(token)       # dict or None
    """

    def __init__(
            self,
            config: GateConfig,
            clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.config = config
        self._clock = clock

    # ── Password check ─────────────────────────────────────────────────────

    def check_password(self, password: str) -> bool:
        """True if password matches the configured admin password."""
        expected = self.config.admin_password
        if not expected or not password:
            return False

        if expected.startswith(_BCRYPT_PREFIXES):
            try:
                return bcrypt.checkpw(
                    password.encode("utf-8"),
                    expected.encode("utf-8"),
                )
            except ValueError:
                # Malformed hash in config: treat as a mismatch, not a 500.
                logger.error("ADMIN_PASSWORD looks like a bcrypt hash but is malformed")
                return False

        return hmac.compare_digest(
            password.encode("utf-8"),
            expected.encode("utf-8"),
        )

    # ── Issue ──────────────────────────────────────────────────────────────

    def create_token(self) -> str:
        """Signs a fresh admin token: {isAdmin: True, iat, exp}."""
        now = self._clock()
        payload = {
            "isAdmin": True,
            "iat": now,
            "exp": now + self.config.token_ttl,
        }
        return jwt.encode(
            payload,
            self.config.secret_key,
            algorithm=self.config.algorithm,
        )

    def issue(self, password: str) -> str:
        """
        Exchanges the admin password for a signed token.

        Raises:
          AppError(INVALID_CREDENTIALS, 401) — password does not match.
        """
        if not self.check_password(password):
            logger.warning("Admin login rejected: invalid password")
            raise AppError(
                ErrorCode.INVALID_CREDENTIALS,
                "Invalid password.",
                401,
            )
        logger.info("Admin login succeeded")
        return self.create_token()

    # ── Verify ─────────────────────────────────────────────────────────────

    def decode(self, token: str) -> dict:
        """
        Validates signature, expiry and the isAdmin claim.

        Expiry is judged against the gate's own clock rather than the system
        time, so a gate built with a shifted clock sees the same deadlines
        it would have issued.

        Raises:
          AppError(TOKEN_EXPIRED, 401) — signature valid but exp has passed.
          AppError(TOKEN_INVALID, 401) — malformed, tampered, signed with a
                                         different secret, or not an admin token.

        Returns: the decoded claims dict.
        """
        try:
            claims = jwt.decode(
                token,
                self.config.secret_key,
                algorithms=[self.config.algorithm],
                options={
                    "require": ["exp", "iat"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError:
            # Covers: bad signature, malformed token, missing claims, etc.
            raise AppError(
                ErrorCode.TOKEN_INVALID,
                "The admin token is invalid or has been tampered with.",
                401,
            )

        exp = claims["exp"]
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise AppError(
                ErrorCode.TOKEN_INVALID,
                "The admin token is invalid or has been tampered with.",
                401,
            )
        if exp <= self._clock().timestamp():
            raise AppError(
                ErrorCode.TOKEN_EXPIRED,
                "The admin token has expired. Log in again.",
                401,
            )

        # Only a literal True counts; "true", 1 and missing claims do not.
        if claims.get("isAdmin") is not True:
            raise AppError(
                ErrorCode.TOKEN_INVALID,
                "The token does not carry an admin claim.",
                401,
            )
        return claims

    def verify(self, token: str) -> dict | None:
        """Returns the admin claims if the token is valid, otherwise None."""
        try:
            return self.decode(token)
        except AppError:
            return None
