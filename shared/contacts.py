"""
Contact normalization: a contact is either an e-mail address or a phone number.

The shape decides the channel: anything containing ``@`` is an e-mail,
everything else is treated as a phone number.
"""

from __future__ import annotations

import re
from enum import Enum

_NON_DIGITS = re.compile(r"\D")

# Phone numbers are matched on their national part (last 10 digits) so that
# "+91 98765 43210", "09876543210" and "9876543210" resolve to the same user.
NATIONAL_NUMBER_DIGITS = 10


class Channel(str, Enum):
    EMAIL = "EMAIL"
    PHONE = "PHONE"


def is_email(contact: str) -> bool:
    return "@" in contact


def channel_for(contact: str) -> Channel:
    return Channel.EMAIL if is_email(contact) else Channel.PHONE


def normalize_contact(contact: str) -> str:
    """Trim whitespace; lower-case e-mail addresses. Phones are kept as typed."""
    contact = (contact or "").strip()
    if is_email(contact):
        return contact.lower()
    return contact


def phone_digits(phone: str) -> str:
    return _NON_DIGITS.sub("", phone or "")


def contact_key(contact: str) -> str:
    """Canonical form of a contact, used to key one-time codes.

    E-mails are lower-cased. Phones collapse to their national number when
    one is present, otherwise to their digits, so every spelling of the same
    number shares one key.
    """
    contact = normalize_contact(contact)
    if is_email(contact):
        return contact
    digits = phone_digits(contact)
    if len(digits) >= NATIONAL_NUMBER_DIGITS:
        return digits[-NATIONAL_NUMBER_DIGITS:]
    return digits or contact


def phone_match_query(phone: str) -> dict:
    """Build a Mongo filter matching a stored phone number.

    Matches the exact stored value or the digits-only form. Inputs carrying a
    full national number also match any stored value ending in it; shorter
    inputs never match on a suffix.
    """
    digits = phone_digits(phone)
    clauses: list[dict] = [{"phone": phone}]
    if digits and digits != phone:
        clauses.append({"phone": digits})
    if len(digits) >= NATIONAL_NUMBER_DIGITS:
        tail = digits[-NATIONAL_NUMBER_DIGITS:]
        clauses.append({"phone": {"$regex": re.escape(tail) + "$"}})
    return {"$or": clauses}


def mask_contact(contact: str) -> str:
    """Partially mask a contact for log lines: ``j***@example.com``, ``******3210``."""
    if not contact:
        return ""
    if is_email(contact):
        local, _, domain = contact.partition("@")
        return f"{local[:1]}***@{domain}"
    digits = phone_digits(contact)
    return "*" * max(len(digits) - 4, 0) + digits[-4:]
