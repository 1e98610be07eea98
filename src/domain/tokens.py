"""
Reset-password tokens - Signed, time-limited, self-invalidating.

A reset token is a JWT whose payload is ``{"customer_id", "exp"}`` and
whose HMAC key is the customer's *current* password hash. Changing the
password changes the hash, so every token issued before the change fails
signature verification. There is no token store and no revocation list.

Consequence: a token cannot be verified on its own. The customer must be
looked up first (using the unverified ``customer_id`` claim) to obtain
the hash the signature is checked against.
"""

import time

from jose import ExpiredSignatureError, JWTError, jwt

from .exceptions import InvalidArgument, NotAllowed

DEFAULT_ALGORITHM = "HS256"
DEFAULT_TTL_SECONDS = 15 * 60


def sign_reset_token(
    customer_id: str,
    password_hash: str,
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
    algorithm: str = DEFAULT_ALGORITHM,
) -> str:
    """
    Sign a reset token for a customer.

    Args:
        customer_id: Id of the customer the token is bound to
        password_hash: Customer's current bcrypt hash, used as the secret
        ttl_seconds: Lifetime; the absolute expiry is embedded as ``exp``

    Returns:
        Compact JWT string
    """
    expiry = int(time.time()) + ttl_seconds
    payload = {"customer_id": customer_id, "exp": expiry}
    return jwt.encode(payload, password_hash, algorithm=algorithm)


def read_reset_token_subject(token: str) -> str:
    """
    Extract the customer id from a token WITHOUT verifying it.

    Only use the result to look up the customer whose hash is then
    passed to verify_reset_token().

    Raises:
        InvalidArgument: If the token cannot be parsed or lacks a customer id
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        raise InvalidArgument("The reset token is malformed") from None

    customer_id = claims.get("customer_id")
    if not isinstance(customer_id, str):
        raise InvalidArgument("The reset token is malformed")
    return customer_id


def verify_reset_token(
    token: str, password_hash: str, algorithm: str = DEFAULT_ALGORITHM
) -> dict:
    """
    Verify signature and expiry against the customer's current hash.

    Returns:
        The verified claims

    Raises:
        NotAllowed: If the signature does not match or the token has expired
    """
    try:
        return jwt.decode(token, password_hash, algorithms=[algorithm])
    except ExpiredSignatureError:
        raise NotAllowed("The reset token has expired") from None
    except JWTError:
        raise NotAllowed("The reset token is invalid") from None
