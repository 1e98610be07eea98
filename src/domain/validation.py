"""
Identity validation - Pure checks run before any store call.

Every function returns the normalized value or raises a domain
exception; none of them touch infrastructure, so a failure here
guarantees no partial side effects.
"""

import re
from collections.abc import Mapping
from typing import Any

from email_validator import EmailNotValidError
from email_validator import validate_email as _check_email_syntax

from .exceptions import InvalidArgument, InvalidData

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
_COUNTRY_CODE_PATTERN = re.compile(r"^[a-z]{2}$")

_ADDRESS_REQUIRED = ("address_1", "city", "country_code")
_ADDRESS_OPTIONAL = (
    "first_name",
    "last_name",
    "company",
    "address_2",
    "province",
    "postal_code",
    "phone",
)

# bcrypt only reads the first 72 bytes of its input
_MAX_PASSWORD_BYTES = 72


def validate_id(raw: Any) -> str:
    """
    Validate a customer id against the store's UUID format.

    Returns:
        The id in canonical lower-case form

    Raises:
        InvalidArgument: If the id is not a well-formed UUID string
    """
    if not isinstance(raw, str) or not _UUID_PATTERN.match(raw):
        raise InvalidArgument("The customer id could not be parsed as a UUID")
    return raw.lower()


def validate_email(raw: Any) -> str:
    """
    Validate email syntax and normalize for storage and lookup.

    Applies: strip whitespace + lowercase, after a syntax check.
    Deliverability (DNS) is not checked.

    Raises:
        InvalidData: If the email is missing or syntactically invalid
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidData("The email is not valid")
    try:
        checked = _check_email_syntax(raw.strip(), check_deliverability=False)
    except EmailNotValidError:
        raise InvalidData("The email is not valid") from None
    return checked.normalized.lower()


def validate_billing_address(raw: Any) -> dict[str, str]:
    """
    Validate a billing address mapping.

    Required: address_1, city, country_code (ISO 3166-1 alpha-2).
    Optional: first_name, last_name, company, address_2, province,
    postal_code, phone.

    Returns:
        A new dict with stripped values and a lower-cased country code

    Raises:
        InvalidData: On missing required fields, unknown fields or wrong types
    """
    if not isinstance(raw, Mapping):
        raise InvalidData("The address is not valid")

    unknown = set(raw) - set(_ADDRESS_REQUIRED) - set(_ADDRESS_OPTIONAL)
    if unknown:
        raise InvalidData("The address is not valid")

    address: dict[str, str] = {}
    for name in _ADDRESS_REQUIRED:
        value = raw.get(name)
        if not isinstance(value, str) or not value.strip():
            raise InvalidData("The address is not valid")
        address[name] = value.strip()

    for name in _ADDRESS_OPTIONAL:
        value = raw.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            raise InvalidData("The address is not valid")
        address[name] = value.strip()

    address["country_code"] = address["country_code"].lower()
    if not _COUNTRY_CODE_PATTERN.match(address["country_code"]):
        raise InvalidData("The address is not valid")

    return address


def validate_password(raw: Any) -> str:
    """
    Check that a plaintext password can be hashed.

    Complexity rules are enforced upstream; this only rejects values
    bcrypt cannot take.

    Raises:
        InvalidData: If the password is not a string or exceeds 72 bytes
    """
    if not isinstance(raw, str):
        raise InvalidData("The password is not valid")
    if len(raw.encode()) > _MAX_PASSWORD_BYTES:
        raise InvalidData("The password must be at most 72 bytes long")
    return raw
