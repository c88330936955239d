"""
Feedline Backend - Auth Gate
==============================

What:  Turns the request's Authorization header into an Identity.
How:   Accepts "Bearer <jwt>", verifies it with PyJWT, and copies the claims
       into the Identity. Absent, malformed, expired or badly signed
       credentials all produce the anonymous identity.
Who:   Called by the request pipeline after the upload stage.

The gate only tags requests. It never raises and never stops the chain;
operations that need an identity refuse work themselves (see
feedline.gateway.context.ExecutionContext.require_auth).
"""

import logging
from typing import Any, Dict, Optional

import jwt

from feedline.schemas.pipeline import ANONYMOUS, Identity

logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"

# Claim names checked, in order, for the user identifier.
USER_ID_CLAIMS = ("userId", "sub")


def create_access_token(
    claims: Dict[str, Any],
    secret_key: str,
    algorithm: str = "HS256",
) -> str:
    """Sign `claims` as a JWT. Used by tests and local tooling."""
    return jwt.encode(claims, secret_key, algorithm=algorithm)


class AuthGate:
    """
    Stateless credential inspector.

    Args:
        secret_key: JWT signing secret. Empty means no token can be verified.
        algorithm:  Accepted signing algorithm.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        self.secret_key = secret_key
        self.algorithm = algorithm

    def identify(self, authorization: Optional[str]) -> Identity:
        token = self._extract_token(authorization)
        if token is None or not self.secret_key:
            return ANONYMOUS

        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.info("Bearer token expired; continuing unauthenticated")
            return ANONYMOUS
        except jwt.PyJWTError as e:
            logger.info("Bearer token rejected (%s); continuing unauthenticated", e)
            return ANONYMOUS

        if not isinstance(payload, dict):
            return ANONYMOUS

        user_id = next(
            (str(payload[c]) for c in USER_ID_CLAIMS if payload.get(c) not in (None, "")),
            None,
        )
        if user_id is None:
            logger.info("Bearer token has no user claim; continuing unauthenticated")
            return ANONYMOUS

        claims = {str(k): str(v) for k, v in payload.items()}
        return Identity(authenticated=True, user_id=user_id, claims=claims)

    @staticmethod
    def _extract_token(authorization: Optional[str]) -> Optional[str]:
        if not authorization:
            return None
        parts = authorization.strip().split(None, 1)
        if len(parts) != 2 or parts[0].lower() != BEARER_SCHEME:
            return None
        token = parts[1].strip()
        return token or None
