"""
Profile record assembly for ProviderProfile.

Maps signup form input and NPI Registry lookup results into the canonical
user-profile and NPI-data records handed to persistence, and validates
those records before they are accepted. Validation collects every
violation instead of stopping at the first.
"""

import re
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd
import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

from provider_profile.validation.identifiers import validate_npi

logger = logging.getLogger(__name__)

MAX_FREE_TEXT_LENGTH = 1000

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
NPI_DIGITS_PATTERN = re.compile(r'^\d{10}$')
ANGLE_BRACKET_PATTERN = re.compile(r'[<>]')
WHITESPACE_PATTERN = re.compile(r'\s+')

ORGANIZATION_ENUMERATION_TYPE = "NPI-2"


def clean_text(value: Any) -> str:
    """Coerce an upstream scalar to a stripped string; missing values become ''."""
    if isinstance(value, str):
        return value.strip()
    if value is None or (pd.api.types.is_scalar(value) and pd.isna(value)):
        return ""
    return str(value).strip()


def optional_text(value: Any) -> Optional[str]:
    text = clean_text(value)
    return text or None


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    """Return the first key present in data, accepting camelCase or snake_case input."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _timestamp(now: Optional[datetime]) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def sanitize_free_text(value: Any, max_length: int = MAX_FREE_TEXT_LENGTH) -> str:
    """
    Make free text safe to treat as trusted.

    Trims surrounding whitespace, removes angle brackets and truncates to
    max_length characters.

    Args:
        value: Raw text
        max_length: Maximum length of the result

    Returns:
        Sanitized text ('' for missing input)
    """
    text = ANGLE_BRACKET_PATTERN.sub('', clean_text(value))
    return text[:max_length].strip()


def split_full_name(full_name: str) -> Dict[str, str]:
    """
    Split a full name into first and last name.

    A single word is treated as the last name; with three or more words
    everything after the first word is the last name.
    """
    parts = WHITESPACE_PATTERN.split(full_name.strip()) if full_name.strip() else []

    if not parts:
        return {"first_name": "", "last_name": ""}
    if len(parts) == 1:
        return {"first_name": "", "last_name": parts[0]}
    return {"first_name": parts[0], "last_name": " ".join(parts[1:])}


def normalize_phone(phone: Any, default_country: str = "US") -> str:
    """
    Normalize a phone number to E164 format.

    Args:
        phone: Raw phone number
        default_country: Region assumed for numbers without a country code

    Returns:
        E164 phone number, or '' if the number is missing or invalid
    """
    phone = clean_text(phone)
    if not phone:
        return ""

    try:
        parsed_phone = phonenumbers.parse(phone, default_country)
    except NumberParseException as e:
        logger.warning(f"Failed to parse phone number: {e}")
        return ""

    if not phonenumbers.is_valid_number(parsed_phone):
        return ""

    return phonenumbers.format_number(parsed_phone, PhoneNumberFormat.E164)


def to_user_profile_record(signup_input: Mapping[str, Any],
                           now: Optional[datetime] = None,
                           max_length: int = MAX_FREE_TEXT_LENGTH) -> Dict[str, Any]:
    """
    Map signup form input to a user profile record.

    Args:
        signup_input: Signup payload (fullName, email, jobTitle,
            organization, npiNumber; snake_case keys are accepted too)
        now: Timestamp for created_at/updated_at
        max_length: Free-text length limit

    Returns:
        User profile insert record
    """
    full_name = sanitize_free_text(_pick(signup_input, "fullName", "full_name"), max_length)
    names = split_full_name(full_name)
    npi_number = re.sub(r'\D', '', clean_text(_pick(signup_input, "npiNumber", "npi_number")))
    timestamp = _timestamp(now)

    return {
        "full_name": full_name,
        "first_name": names["first_name"],
        "last_name": names["last_name"],
        "email": clean_text(_pick(signup_input, "email")).lower(),
        "job_title": sanitize_free_text(_pick(signup_input, "jobTitle", "job_title"), max_length),
        "organization": sanitize_free_text(_pick(signup_input, "organization"), max_length) or None,
        "npi_number": npi_number or None,
        "created_at": timestamp,
        "updated_at": timestamp,
    }


def select_primary_address(addresses: Optional[Sequence[Mapping[str, Any]]]) -> Optional[Mapping[str, Any]]:
    """
    Pick the primary address from an NPI Registry address list.

    The practice location (address_purpose LOCATION) is preferred when the
    registry flags one; otherwise the first address wins.
    """
    if not addresses:
        return None

    for address in addresses:
        if clean_text(address.get("address_purpose")).upper() == "LOCATION":
            return address

    return addresses[0]


def select_primary_taxonomy(taxonomies: Optional[Sequence[Mapping[str, Any]]]) -> Optional[Mapping[str, Any]]:
    """Pick the taxonomy flagged primary, else the first entry."""
    if not taxonomies:
        return None

    for taxonomy in taxonomies:
        if taxonomy.get("primary") is True:
            return taxonomy

    return taxonomies[0]


def to_npi_data_record(provider_lookup: Mapping[str, Any],
                       now: Optional[datetime] = None,
                       default_country: str = "US") -> Dict[str, Any]:
    """
    Map an NPI Registry result to an NPI data record.

    Args:
        provider_lookup: One entry of the registry's "results" list
        now: Timestamp for created_at/updated_at
        default_country: Region used to normalise telephone numbers

    Returns:
        NPI data insert record
    """
    basic = provider_lookup.get("basic") or {}
    address = select_primary_address(provider_lookup.get("addresses"))
    taxonomy = select_primary_taxonomy(provider_lookup.get("taxonomies"))
    timestamp = _timestamp(now)

    primary_address = None
    if address is not None:
        primary_address = {
            "address_1": clean_text(address.get("address_1")),
            "address_2": optional_text(address.get("address_2")),
            "city": clean_text(address.get("city")),
            "state": clean_text(address.get("state")).upper(),
            "postal_code": clean_text(address.get("postal_code")),
            "country_code": clean_text(address.get("country_code")) or default_country,
            "telephone_number": normalize_phone(
                address.get("telephone_number"),
                clean_text(address.get("country_code")) or default_country,
            ),
        }

    primary_taxonomy = None
    if taxonomy is not None:
        primary_taxonomy = {
            "code": clean_text(taxonomy.get("code")),
            "description": clean_text(taxonomy.get("desc")),
            "primary": bool(taxonomy.get("primary", False)),
            "state": optional_text(taxonomy.get("state")),
            "license": optional_text(taxonomy.get("license")),
        }

    return {
        "npi_number": clean_text(provider_lookup.get("number")),
        "enumeration_type": clean_text(provider_lookup.get("enumeration_type")),
        "first_name": optional_text(basic.get("first_name")),
        "last_name": optional_text(basic.get("last_name")),
        "middle_name": optional_text(basic.get("middle_name")),
        "organization_name": optional_text(basic.get("organization_name") or basic.get("name")),
        "credential": optional_text(basic.get("credential")),
        "gender": optional_text(basic.get("gender")),
        "enumeration_date": optional_text(basic.get("enumeration_date")),
        "last_updated": optional_text(basic.get("last_updated")),
        "status": optional_text(basic.get("status")),
        "primary_address": primary_address,
        "primary_taxonomy": primary_taxonomy,
        "raw_npi_data": dict(provider_lookup),
        "created_at": timestamp,
        "updated_at": timestamp,
    }


def parse_npi_lookup_response(response: Optional[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """
    Extract provider results from an NPI Registry response.

    No match is a valid outcome and yields an empty list.
    """
    if not response:
        return []
    results = response.get("results") or []
    if not results:
        logger.info("NPI lookup returned no results")
    return list(results)


def to_complete_signup(signup_input: Mapping[str, Any], provider_lookup: Mapping[str, Any],
                       now: Optional[datetime] = None,
                       max_length: int = MAX_FREE_TEXT_LENGTH,
                       default_country: str = "US") -> Dict[str, Dict[str, Any]]:
    """
    Build both records for a completed signup.

    The user record takes its NPI number from the confirmed registry
    result.
    """
    npi_data = to_npi_data_record(provider_lookup, now=now, default_country=default_country)
    user_profile = to_user_profile_record(signup_input, now=now, max_length=max_length)
    if npi_data["npi_number"]:
        user_profile["npi_number"] = npi_data["npi_number"]

    return {"user_profile": user_profile, "npi_data": npi_data}


class ProfileRecordAssembler:
    """
    Signup record assembly bound to one configuration.

    Reads the free-text limit from sanitize.max_length and the region for
    telephone numbers without a country code from
    phone.default_country_code.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize assembler with configuration.

        Args:
            config: Engine configuration (see load_profile_config)
        """
        self.max_length = config.get("sanitize", {}).get("max_length", MAX_FREE_TEXT_LENGTH)
        self.default_country = config.get("phone", {}).get("default_country_code", "US")

        logger.info(f"Initialized ProfileRecordAssembler (max_length={self.max_length}, "
                    f"default_country={self.default_country})")

    def user_profile_record(self, signup_input: Mapping[str, Any],
                            now: Optional[datetime] = None) -> Dict[str, Any]:
        return to_user_profile_record(signup_input, now=now, max_length=self.max_length)

    def npi_data_record(self, provider_lookup: Mapping[str, Any],
                        now: Optional[datetime] = None) -> Dict[str, Any]:
        return to_npi_data_record(provider_lookup, now=now, default_country=self.default_country)

    def complete_signup(self, signup_input: Mapping[str, Any], provider_lookup: Mapping[str, Any],
                        now: Optional[datetime] = None) -> Dict[str, Dict[str, Any]]:
        return to_complete_signup(signup_input, provider_lookup, now=now,
                                  max_length=self.max_length, default_country=self.default_country)


def _check_npi_number(value: Any, errors: List[str]):
    npi_number = clean_text(value)
    if not npi_number:
        errors.append("NPI number is required")
    elif not NPI_DIGITS_PATTERN.match(npi_number):
        errors.append("NPI number must be exactly 10 digits")
    elif not validate_npi(npi_number):
        errors.append("NPI number failed checksum validation")


def validate_user_profile(record: Mapping[str, Any]) -> List[str]:
    """
    Validate a user profile record.

    Args:
        record: User profile insert record

    Returns:
        List of error messages, empty when the record is valid
    """
    errors = []

    if not clean_text(record.get("full_name")):
        errors.append("Full name is required")

    email = clean_text(record.get("email"))
    if not email:
        errors.append("Email is required")
    elif not EMAIL_PATTERN.match(email):
        errors.append("Email format is invalid")

    if not clean_text(record.get("job_title")):
        errors.append("Job title is required")

    if record.get("npi_number") is not None:
        _check_npi_number(record.get("npi_number"), errors)

    return errors


def validate_npi_data(record: Mapping[str, Any]) -> List[str]:
    """
    Validate an NPI data record.

    Individual providers need a first and last name; organisations
    (NPI-2) need an organisation name.

    Args:
        record: NPI data insert record

    Returns:
        List of error messages, empty when the record is valid
    """
    errors = []

    _check_npi_number(record.get("npi_number"), errors)

    if clean_text(record.get("enumeration_type")) == ORGANIZATION_ENUMERATION_TYPE:
        if not clean_text(record.get("organization_name")):
            errors.append("Organization name is required")
    else:
        if not clean_text(record.get("first_name")):
            errors.append("First name is required")
        if not clean_text(record.get("last_name")):
            errors.append("Last name is required")

    return errors
