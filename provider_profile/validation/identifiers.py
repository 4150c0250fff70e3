"""
Identifier validation for ProviderProfile.

Validates NPI numbers, ClinicalTrials.gov NCT identifiers, PubMed ids and
article URLs before they are admitted into a provider profile. Every
validator is a total function: invalid input yields False, never an
exception.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

# Luhn contribution of the "80840" health-industry prefix that NPIs are
# issued under (ISO 7812). Adding it lets the 10-digit NPI be checked alone.
NPI_PREFIX_CONSTANT = 24

NPI_LENGTH = 10
NCT_ID_LENGTH = 11

_NON_DIGIT_PATTERN = re.compile(r'\D')
_NCT_STRIP_PATTERN = re.compile(r'[^A-Z0-9]')
_NCT_INPUT_STRIP_PATTERN = re.compile(r'[^NCT0-9]')
_NCT_ID_PATTERN = re.compile(r'NCT\d{8}')
_PMID_PATTERN = re.compile(r'\d{1,8}')
_WHITESPACE_PATTERN = re.compile(r'\s')


def _digits_only(value: str) -> str:
    return _NON_DIGIT_PATTERN.sub('', value)


def npi_check_digit(first_nine: str) -> int:
    """
    Compute the NPI check digit for the first nine digits.

    Digits at even positions (0, 2, 4, 6, 8 from the left) are doubled and
    a doubled value of 10 or more is reduced by 9. The transformed digits
    are summed together with the prefix constant.

    Args:
        first_nine: Exactly nine digit characters

    Returns:
        Check digit in the range 0-9
    """
    total = NPI_PREFIX_CONSTANT
    for position, char in enumerate(first_nine):
        digit = int(char)
        if position % 2 == 0:
            digit *= 2
            if digit >= 10:
                digit -= 9
        total += digit

    return (10 - (total % 10)) % 10


def validate_npi(value: Any) -> bool:
    """
    Validate a National Provider Identifier.

    Non-digit characters are ignored, so "1234-567-893" and "1234567893"
    validate identically.

    Args:
        value: Raw NPI input

    Returns:
        True if the input holds 10 digits with a correct check digit
    """
    if not isinstance(value, str):
        return False

    digits = _digits_only(value)
    if len(digits) != NPI_LENGTH:
        return False

    return npi_check_digit(digits[:9]) == int(digits[9])


def format_npi(value: Any) -> Any:
    """
    Render an NPI as XXXX-XXX-XXX.

    Best effort only: input that does not hold exactly 10 digits is
    returned unchanged. Formatting says nothing about validity.
    """
    if not isinstance(value, str):
        return value

    digits = _digits_only(value)
    if len(digits) != NPI_LENGTH:
        return value

    return f"{digits[:4]}-{digits[4:7]}-{digits[7:]}"


def normalize_nct_id(value: Any) -> str:
    """Uppercase and drop every character outside [A-Z0-9]."""
    if not isinstance(value, str):
        return ""
    return _NCT_STRIP_PATTERN.sub('', value.upper())


def validate_nct_id(value: Any) -> bool:
    """
    Validate a ClinicalTrials.gov study identifier.

    Args:
        value: Raw NCT id input

    Returns:
        True if the normalized value is "NCT" followed by 8 digits
    """
    if not isinstance(value, str):
        return False
    return _NCT_ID_PATTERN.fullmatch(normalize_nct_id(value)) is not None


def format_nct_input(value: Any) -> str:
    """
    Auto-format NCT id input while the user types.

    Keeps only N, C, T and digits, prepends "NCT" when the input does not
    already start with it, and caps the result at 11 characters. The
    output is not guaranteed to be valid.

    Args:
        value: Current contents of the input field

    Returns:
        Formatted input value
    """
    if not isinstance(value, str):
        return ""

    formatted = _NCT_INPUT_STRIP_PATTERN.sub('', value.upper())
    if formatted and not formatted.startswith("NCT"):
        formatted = "NCT" + formatted

    return formatted[:NCT_ID_LENGTH]


def validate_pmid(value: Any) -> bool:
    """Validate a PubMed id: 1 to 8 digits once surrounding whitespace is removed."""
    if not isinstance(value, str):
        return False
    return _PMID_PATTERN.fullmatch(value.strip()) is not None


def normalize_url(value: Any) -> Optional[str]:
    """
    Parse an article URL, adding https:// when no scheme is given.

    Args:
        value: Raw URL input

    Returns:
        Normalized URL string, or None if the input cannot be parsed
    """
    if not isinstance(value, str):
        return None

    url = value.strip()
    if not url or _WHITESPACE_PATTERN.search(url):
        return None

    if not url.lower().startswith(("http://", "https://")):
        url = "https://" + url

    try:
        parts = urlsplit(url)
        # Raises ValueError for a malformed port
        parts.port
    except ValueError:
        return None

    if not parts.hostname:
        return None

    path = parts.path or "/"
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, parts.fragment))


def validate_url(value: Any) -> bool:
    """
    Validate an article URL.

    A successful parse with a hostname is sufficient; reachability is not
    checked.
    """
    return normalize_url(value) is not None


IDENTIFIER_VALIDATORS: Dict[str, Callable[[Any], bool]] = {
    "npi": validate_npi,
    "nct": validate_nct_id,
    "pmid": validate_pmid,
    "url": validate_url,
}


@dataclass(frozen=True)
class Identifier:
    """A typed identifier value together with its validation outcome."""

    kind: str
    value: str
    is_valid: bool


def make_identifier(kind: str, raw: Any) -> Identifier:
    """
    Validate a raw value as an identifier of the given kind.

    Valid values are stored in canonical form (digits-only NPI, normalized
    NCT id, trimmed PMID, normalized URL); invalid ones keep the raw text
    so it can be shown back to the user.

    Args:
        kind: One of "npi", "nct", "pmid", "url"
        raw: Raw user or upstream input

    Returns:
        Identifier with validity flag
    """
    if kind not in IDENTIFIER_VALIDATORS:
        raise ValueError(f"Unknown identifier kind: {kind}")

    text = raw if isinstance(raw, str) else ""
    is_valid = IDENTIFIER_VALIDATORS[kind](raw)
    if not is_valid:
        return Identifier(kind=kind, value=text, is_valid=False)

    if kind == "npi":
        canonical = _digits_only(text)
    elif kind == "nct":
        canonical = normalize_nct_id(text)
    elif kind == "url":
        canonical = normalize_url(text)
    else:
        canonical = text.strip()

    return Identifier(kind=kind, value=canonical, is_valid=True)
