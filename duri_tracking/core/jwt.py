"""JWT verification for identity provider access tokens.

Tokens are HS256-signed with the project's shared JWT secret and carry
the ``authenticated`` audience.
"""

import jwt

from duri_tracking.config import settings
from duri_tracking.schemas.auth import JWTClaims
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)

TOKEN_AUDIENCE = "authenticated"


class JWTVerifier:
    """Decode and validate bearer tokens."""

    def __init__(self, jwt_secret: str, audience: str = TOKEN_AUDIENCE):
        """Initialize JWT verifier.

        Args:
            jwt_secret: Shared secret for HS256 verification
            audience: Expected ``aud`` claim
        """
        self.jwt_secret = jwt_secret
        self.audience = audience

    def verify_token(self, token: str) -> JWTClaims:
        """Verify and decode a JWT token.

        Args:
            token: JWT access token from Authorization header

        Returns:
            JWTClaims: Decoded and validated claims

        Raises:
            jwt.InvalidTokenError: If the token is invalid, expired or the
                secret is not configured
        """
        if not self.jwt_secret:
            raise jwt.InvalidTokenError("JWT secret is not configured")

        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=["HS256"],
                audience=self.audience,
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            LOGGER.warning(f"Token expired: {e}")
            raise jwt.InvalidTokenError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            LOGGER.warning(f"Invalid token: {e}")
            raise

        claims = JWTClaims(**{k: v for k, v in payload.items() if k in JWTClaims.model_fields})
        LOGGER.debug(f"Successfully verified token for user: {claims.sub}")
        return claims


jwt_verifier = JWTVerifier(jwt_secret=settings.supabase_jwt_secret)
