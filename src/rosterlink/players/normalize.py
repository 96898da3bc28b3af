"""
Signup normalization and name comparison utilities.

Signup forms are free text, so the same player shows up in many shapes:
- Phones: "+1 (614) 555-0100", "614.555.0100", "6145550100"
- Emails: " Jane.Doe@School.ORG "
- Names: "Jane Doe", "jane  doe", "Jane Marie Doe"

This module canonicalizes those values so the matching strategies can
use plain equality filters, and provides the word-overlap similarity
the confidence scorer uses. Every function here is pure and never
raises: malformed input degrades to an empty value.
"""

import re
from typing import NamedTuple

from rosterlink.players.types import NormalizedSignupInfo, SignupInfo

_NON_DIGITS = re.compile(r"\D")


class ParsedName(NamedTuple):
    first_name: str
    last_name: str


def normalize_phone_number(raw) -> str:
    """
    Normalize a phone number to bare digits.

    Strips every non-digit character, then drops the US country code
    when the result is 11 digits starting with "1".

    Examples:
        >>> normalize_phone_number("+1 (614) 555-0100")
        '6145550100'
        >>> normalize_phone_number("614.555.0100")
        '6145550100'
        >>> normalize_phone_number(None)
        ''
    """
    if not raw or not isinstance(raw, str):
        return ""

    digits = _NON_DIGITS.sub("", raw)

    if len(digits) == 11 and digits.startswith("1"):
        return digits[1:]

    return digits


def normalize_email(raw) -> str:
    """
    Lower-case and trim an email address.

    Examples:
        >>> normalize_email(" Foo@Bar.COM ")
        'foo@bar.com'
    """
    if not raw or not isinstance(raw, str):
        return ""

    return raw.lower().strip()


def parse_full_name(raw) -> ParsedName:
    """
    Split a full name into first and last name.

    Tokens are whitespace-delimited. With more than two tokens the first
    is the first name and the last is the last name; middle tokens are
    dropped. Downstream matching is tuned against this two-token form,
    so "Mary Ann Smith" parses as ("Mary", "Smith").

    Examples:
        >>> parse_full_name("John Michael Smith")
        ParsedName(first_name='John', last_name='Smith')
        >>> parse_full_name("Cher")
        ParsedName(first_name='Cher', last_name='')
    """
    if not raw or not isinstance(raw, str):
        return ParsedName("", "")

    parts = raw.split()

    if not parts:
        return ParsedName("", "")
    if len(parts) == 1:
        return ParsedName(parts[0], "")

    return ParsedName(parts[0], parts[-1])


def normalize_signup(signup: SignupInfo) -> NormalizedSignupInfo:
    """Build the normalized view of a signup used by every strategy."""
    first_name, last_name = parse_full_name(signup.full_name)
    return NormalizedSignupInfo(
        first_name=first_name,
        last_name=last_name,
        full_name=signup.full_name if isinstance(signup.full_name, str) else "",
        normalized_phone=normalize_phone_number(signup.phone_number),
        normalized_email=normalize_email(signup.email),
        school_irn=(signup.school_irn or "").strip() if isinstance(signup.school_irn, str) else "",
        school_name=(signup.school_name or "").strip() if isinstance(signup.school_name, str) else "",
    )


def _clean(value) -> str:
    if not value or not isinstance(value, str):
        return ""
    return " ".join(value.lower().split())


def name_similarity(name1, name2) -> float:
    """
    Compare two names and return a word-overlap similarity.

    Scoring:
    1. Identical (after lower-casing and whitespace cleanup): 1.0
    2. One contains the other as a substring: 0.8
    3. Otherwise: shared tokens longer than one character, divided by
       the larger token count of the two names

    Args:
        name1: First name to compare (any casing/spacing)
        name2: Second name to compare

    Returns:
        Similarity from 0.0 (no overlap or missing value) to 1.0

    Examples:
        >>> name_similarity("Jane Doe", "jane  doe")
        1.0
        >>> name_similarity("Jane", "Jane Doe")
        0.8
        >>> name_similarity("Jane Doe", "Jane Smith")
        0.5
    """
    n1 = _clean(name1)
    n2 = _clean(name2)

    if not n1 or not n2:
        return 0.0

    if n1 == n2:
        return 1.0

    if n1 in n2 or n2 in n1:
        return 0.8

    words1 = n1.split(" ")
    words2 = n2.split(" ")
    remaining = list(words2)

    # Each token on the right side can only be matched once
    matching = 0
    for word in words1:
        if len(word) > 1 and word in remaining:
            matching += 1
            remaining.remove(word)

    return matching / max(len(words1), len(words2))
