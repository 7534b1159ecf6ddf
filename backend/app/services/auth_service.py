"""
Waterfall Manager Backend — Bearer Token Authentication
========================================================

What:  Turns a bearer token into an authenticated Identity {user_id, email, role}.
How:   HS256 JWTs verified with PyJWT. The authenticator is built once at
       application startup from settings and stored on `app.state`; request
       handlers receive it through a dependency and never touch the
       process environment.
Who:   `app.routes.deps.get_current_identity`; tests and tooling use
       `issue_token` to mint credentials with the same claim layout.

Token claims:
    sub     user id (UUID string)
    email   user email
    role    JSON-encoded role name, e.g. "\"ProjectManager\"" (a bare
            ProjectManager is accepted too)
    exp     expiry (seconds since epoch)

Unparseable role claims follow ROLE_CLAIM_POLICY:
    reject     → AuthenticationError (401)
    downgrade  → identity gets Role.DEVELOPER, a warning is logged
"""

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from app.config import Settings
from app.exceptions import AuthenticationError, ConfigurationError
from app.models.phases import Role

logger = logging.getLogger(__name__)

ROLE_CLAIM_POLICIES = ("reject", "downgrade")


@dataclass(frozen=True)
class Identity:
    """An authenticated caller."""
    user_id: uuid.UUID
    email: str
    role: Role


class TokenAuthenticator:
    """
    Verifies and issues bearer tokens with a fixed secret and policy.

    Args:
        secret: HMAC secret shared with the token issuer (required)
        algorithm: JWT signing algorithm
        role_claim_policy: 'reject' or 'downgrade'
        expires_in: lifetime of tokens minted by issue_token()
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        role_claim_policy: str = "reject",
        expires_in: timedelta = timedelta(hours=24),
    ):
        if not secret:
            raise ConfigurationError("JWT secret must not be empty")
        if role_claim_policy not in ROLE_CLAIM_POLICIES:
            raise ConfigurationError(
                f"Unknown role claim policy '{role_claim_policy}'. "
                f"Must be one of: {', '.join(ROLE_CLAIM_POLICIES)}"
            )
        self._secret = secret
        self.algorithm = algorithm
        self.role_claim_policy = role_claim_policy
        self.expires_in = expires_in

    @classmethod
    def from_settings(cls, config: Settings) -> "TokenAuthenticator":
        """Build from validated settings; raises ConfigurationError when incomplete."""
        config.validate_required_for_production()
        return cls(
            secret=config.jwt_secret,
            algorithm=config.jwt_algorithm,
            role_claim_policy=config.role_claim_policy,
            expires_in=timedelta(hours=config.jwt_expires_hours),
        )

    # ── Verification ──────────────────────────────────────────────────────

    def authenticate(self, token: str) -> Identity:
        """
        Decode and verify `token`, returning the caller's identity.

        Raises:
            AuthenticationError: bad signature, expired, malformed claims,
                or (under the 'reject' policy) an unrecognized role.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token expired") from None
        except jwt.InvalidTokenError as e:
            logger.info("Rejected bearer token: %s", type(e).__name__)
            raise AuthenticationError("Invalid token") from None

        try:
            user_id = uuid.UUID(str(claims["sub"]))
        except ValueError:
            raise AuthenticationError("Invalid token subject") from None

        return Identity(
            user_id=user_id,
            email=str(claims.get("email", "")),
            role=self._parse_role_claim(claims.get("role"), user_id),
        )

    def _parse_role_claim(self, claim: Any, user_id: uuid.UUID) -> Role:
        try:
            if not isinstance(claim, str):
                raise ValueError("role claim missing")
            name = json.loads(claim) if claim.startswith('"') else claim
            if not isinstance(name, str):
                raise ValueError("role claim is not a string")
            return Role.from_name(name)
        except ValueError:
            if self.role_claim_policy == "downgrade":
                logger.warning(
                    "Unrecognized role claim for user %s; downgrading to %s",
                    user_id,
                    Role.DEVELOPER.api_name,
                )
                return Role.DEVELOPER
            raise AuthenticationError("Token role claim is not recognized") from None

    # ── Issuing ───────────────────────────────────────────────────────────

    def issue_token(
        self,
        user_id: uuid.UUID,
        email: str,
        role: Role,
        expires_in: Optional[timedelta] = None,
    ) -> str:
        """Mint a token carrying the claim layout `authenticate` expects."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "email": email,
            "role": json.dumps(role.api_name),
            "iat": int(now.timestamp()),
            "exp": int((now + (expires_in or self.expires_in)).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)
