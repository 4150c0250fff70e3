"""
Unit tests for profile record transformers and upstream payload mapping.
"""

import pytest
import sys
from datetime import date, datetime, timezone
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from provider_profile.config import get_default_profile_config, merge_configs
from provider_profile.transform.records import (
    ProfileRecordAssembler,
    normalize_phone,
    parse_npi_lookup_response,
    sanitize_free_text,
    select_primary_address,
    select_primary_taxonomy,
    split_full_name,
    to_complete_signup,
    to_npi_data_record,
    to_user_profile_record,
    validate_npi_data,
    validate_user_profile,
)
from provider_profile.transform.upstream import (
    detect_media_type,
    media_payloads_from_metadata,
    parse_clinical_trial_study,
    parse_pubmed_article,
    parse_url_metadata,
    site_name_from_domain,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

PROVIDER_LOOKUP = {
    "number": "1234567893",
    "enumeration_type": "NPI-1",
    "basic": {
        "first_name": "JANE",
        "last_name": "DOE",
        "credential": "MD",
        "gender": "F",
        "status": "A",
        "enumeration_date": "2010-01-01",
    },
    "addresses": [
        {
            "address_purpose": "MAILING",
            "address_1": "PO Box 1",
            "city": "Akron",
            "state": "oh",
            "postal_code": "44301",
            "country_code": "US",
            "telephone_number": "330-555-0100",
        },
        {
            "address_purpose": "LOCATION",
            "address_1": "9500 Euclid Ave",
            "city": "Cleveland",
            "state": "OH",
            "postal_code": "44195",
            "country_code": "US",
            "telephone_number": "216-444-2200",
        },
    ],
    "taxonomies": [
        {"code": "207R00000X", "desc": "Internal Medicine", "primary": False, "state": "OH"},
        {"code": "207RC0000X", "desc": "Cardiovascular Disease", "primary": True, "state": "OH",
         "license": "35.012345"},
    ],
}


class TestFreeText:
    """Test cases for free-text handling."""

    def test_sanitize_free_text(self):
        assert sanitize_free_text("  <script>alert(1)</script>  ") == "scriptalert(1)/script"
        assert sanitize_free_text("Cardiologist") == "Cardiologist"
        assert sanitize_free_text(None) == ""
        assert len(sanitize_free_text("a" * 1500)) == 1000
        assert sanitize_free_text("abcdef", max_length=3) == "abc"

    def test_split_full_name(self):
        assert split_full_name("Jane Doe") == {"first_name": "Jane", "last_name": "Doe"}
        assert split_full_name("Jane Q Doe") == {"first_name": "Jane", "last_name": "Q Doe"}
        assert split_full_name("Cher") == {"first_name": "", "last_name": "Cher"}
        assert split_full_name("   ") == {"first_name": "", "last_name": ""}


class TestPhoneNormalization:
    """Test cases for telephone numbers."""

    def test_us_numbers_to_e164(self):
        assert normalize_phone("(216) 444-2200") == "+12164442200"
        assert normalize_phone("216.444.2200") == "+12164442200"
        assert normalize_phone("+1 216 444 2200") == "+12164442200"

    def test_invalid_numbers(self):
        assert normalize_phone("123") == ""
        assert normalize_phone("not a phone") == ""
        assert normalize_phone(None) == ""
        assert normalize_phone("") == ""


class TestUserProfileRecord:
    """Test cases for signup mapping and validation."""

    def test_to_user_profile_record(self):
        record = to_user_profile_record({
            "fullName": "  Jane Doe ",
            "email": " Jane.Doe@Example.com ",
            "jobTitle": "Cardiologist <b>",
            "organization": "Cleveland Clinic",
            "npiNumber": "1234-567-893",
        }, now=NOW)

        assert record["full_name"] == "Jane Doe"
        assert record["first_name"] == "Jane"
        assert record["last_name"] == "Doe"
        assert record["email"] == "jane.doe@example.com"
        assert record["job_title"] == "Cardiologist b"
        assert record["organization"] == "Cleveland Clinic"
        assert record["npi_number"] == "1234567893"
        assert record["created_at"] == NOW.isoformat()
        assert validate_user_profile(record) == []

    def test_snake_case_input_and_missing_npi(self):
        record = to_user_profile_record({"full_name": "Jane Doe", "email": "jane@example.com",
                                         "job_title": "Nurse"})
        assert record["npi_number"] is None
        assert record["organization"] is None
        assert validate_user_profile(record) == []

    def test_validation_collects_all_errors(self):
        errors = validate_user_profile({"full_name": "", "email": "bad", "job_title": "", "npi_number": "123"})
        assert errors == [
            "Full name is required",
            "Email format is invalid",
            "Job title is required",
            "NPI number must be exactly 10 digits",
        ]

    def test_missing_email_and_bad_checksum(self):
        errors = validate_user_profile({"full_name": "Jane Doe", "email": "", "job_title": "MD",
                                        "npi_number": "1234567890"})
        assert errors == ["Email is required", "NPI number failed checksum validation"]


class TestNPIDataRecord:
    """Test cases for NPI Registry mapping."""

    def test_select_primary_address(self):
        assert select_primary_address(PROVIDER_LOOKUP["addresses"])["city"] == "Cleveland"
        assert select_primary_address(PROVIDER_LOOKUP["addresses"][:1])["city"] == "Akron"
        first_wins = [{"city": "First"}, {"city": "Second"}]
        assert select_primary_address(first_wins)["city"] == "First"
        assert select_primary_address([]) is None

    def test_select_primary_taxonomy(self):
        assert select_primary_taxonomy(PROVIDER_LOOKUP["taxonomies"])["code"] == "207RC0000X"
        no_flag = [{"code": "A"}, {"code": "B"}]
        assert select_primary_taxonomy(no_flag)["code"] == "A"
        assert select_primary_taxonomy(None) is None

    def test_to_npi_data_record(self):
        record = to_npi_data_record(PROVIDER_LOOKUP, now=NOW)

        assert record["npi_number"] == "1234567893"
        assert record["first_name"] == "JANE"
        assert record["credential"] == "MD"
        assert record["primary_address"]["city"] == "Cleveland"
        assert record["primary_address"]["telephone_number"] == "+12164442200"
        assert record["primary_taxonomy"] == {
            "code": "207RC0000X",
            "description": "Cardiovascular Disease",
            "primary": True,
            "state": "OH",
            "license": "35.012345",
        }
        assert record["raw_npi_data"] == PROVIDER_LOOKUP
        assert validate_npi_data(record) == []

    def test_record_without_addresses(self):
        record = to_npi_data_record({"number": "1234567893", "basic": {"first_name": "A", "last_name": "B"}})
        assert record["primary_address"] is None
        assert record["primary_taxonomy"] is None

    def test_validate_npi_data(self):
        assert validate_npi_data({"npi_number": "1234567893", "enumeration_type": "NPI-2"}) == [
            "Organization name is required",
        ]
        assert validate_npi_data({"npi_number": "", "enumeration_type": "NPI-1"}) == [
            "NPI number is required",
            "First name is required",
            "Last name is required",
        ]

    def test_parse_npi_lookup_response(self):
        assert parse_npi_lookup_response({"result_count": 0, "results": []}) == []
        assert parse_npi_lookup_response({"result_count": 0}) == []
        assert parse_npi_lookup_response(None) == []
        assert parse_npi_lookup_response({"result_count": 1, "results": [PROVIDER_LOOKUP]}) == [PROVIDER_LOOKUP]

    def test_to_complete_signup(self):
        records = to_complete_signup(
            {"fullName": "Jane Doe", "email": "jane@example.com", "jobTitle": "Cardiologist"},
            PROVIDER_LOOKUP,
            now=NOW,
        )
        assert records["user_profile"]["npi_number"] == "1234567893"
        assert records["npi_data"]["npi_number"] == "1234567893"
        assert records["user_profile"]["created_at"] == records["npi_data"]["created_at"]


class TestProfileRecordAssembler:
    """Test cases for configured record assembly."""

    def setup_method(self):
        """Setup test fixtures."""
        config = merge_configs(get_default_profile_config(), {
            "sanitize": {"max_length": 10},
            "phone": {"default_country_code": "GB"},
        })
        self.assembler = ProfileRecordAssembler(config)

    def test_max_length_from_config(self):
        records = self.assembler.complete_signup(
            {"fullName": "A" * 50, "email": "a@example.com", "jobTitle": "Consultant Cardiologist"},
            PROVIDER_LOOKUP,
            now=NOW,
        )
        assert records["user_profile"]["full_name"] == "A" * 10
        assert records["user_profile"]["job_title"] == "Consultant"

    def test_default_country_from_config(self):
        lookup = {
            "number": "1234567893",
            "basic": {"first_name": "A", "last_name": "B"},
            "addresses": [{"address_purpose": "LOCATION", "telephone_number": "020 7219 3000"}],
        }
        record = self.assembler.npi_data_record(lookup, now=NOW)
        assert record["primary_address"]["country_code"] == "GB"
        assert record["primary_address"]["telephone_number"] == "+442072193000"

    def test_defaults_without_config_sections(self):
        assembler = ProfileRecordAssembler({})
        assert assembler.max_length == 1000
        assert assembler.default_country == "US"

    def test_explicit_parameters(self):
        records = to_complete_signup({"fullName": "A" * 50}, PROVIDER_LOOKUP, now=NOW, max_length=5)
        assert records["user_profile"]["full_name"] == "AAAAA"


class TestUpstreamParsers:
    """Test cases for upstream payload mapping."""

    def test_parse_clinical_trial_study(self):
        study = {
            "protocolSection": {
                "identificationModule": {"nctId": "NCT12345678", "briefTitle": "Heart Failure Study"},
                "statusModule": {
                    "overallStatus": "RECRUITING",
                    "startDateStruct": {"date": "2023-01"},
                },
                "designModule": {
                    "phases": ["PHASE2"],
                    "studyType": "INTERVENTIONAL",
                    "enrollmentInfo": {"count": 120},
                },
                "conditionsModule": {"conditions": ["Heart Failure"], "keywords": ["HFrEF"]},
                "interventionsModule": {"interventions": [{"name": "Drug A"}]},
                "sponsorCollaboratorsModule": {
                    "leadSponsor": {"name": "Cleveland Clinic"},
                    "collaborators": [{"name": "NHLBI"}],
                },
                "descriptionModule": {"briefSummary": "A study."},
            }
        }
        payload = parse_clinical_trial_study(study)

        assert payload.nct_id == "NCT12345678"
        assert payload.status == "recruiting"
        assert payload.phase == ["PHASE2"]
        assert payload.enrollment_count == 120
        assert payload.interventions == ["Drug A"]
        assert payload.collaborators == ["NHLBI"]
        assert payload.start_date == "2023-01"
        assert payload.completion_date is None

    def test_parse_minimal_study(self):
        payload = parse_clinical_trial_study({})
        assert payload.status == "unknown"
        assert payload.enrollment_count == 0

    def test_parse_pubmed_article(self):
        payload = parse_pubmed_article({
            "pmid": "12345678",
            "title": "Outcomes after TAVR",
            "authors": [{"lastName": "Doe", "foreName": "Jane"}, "John Smith", {"lastName": ""}],
            "journal": "NEJM",
            "pubDate": "2023 Mar",
            "doi": "10.1000/xyz",
            "publicationType": ["Journal Article"],
        })

        assert payload.authors == ["Jane Doe", "John Smith"]
        assert payload.publication_date == date(2023, 3, 1)
        assert payload.publication_type == "peer_reviewed"
        assert payload.pmid == "12345678"

    def test_unparseable_pub_date(self):
        payload = parse_pubmed_article({"title": "T", "pubDate": "Spring 2023"})
        assert payload.publication_date is None
        assert payload.publication_type == "other"

    def test_detect_media_type(self):
        assert detect_media_type("https://www.youtube.com/watch?v=abc") == "video"
        assert detect_media_type("https://example.com/podcast/episode-4") == "podcast"
        assert detect_media_type("https://example.com/press-release/new-center") == "press_release"
        assert detect_media_type("https://example.com/news/story", "An interview with Dr. Doe") == "interview"
        assert detect_media_type("https://example.com/opinion/health-costs") == "opinion"
        assert detect_media_type("https://example.com/blog/post") == "blog_post"
        assert detect_media_type("https://example.com/news/story") == "news_article"

    def test_site_name_from_domain(self):
        assert site_name_from_domain("www.nytimes.com") == "The New York Times"
        assert site_name_from_domain("health.nytimes.com") == "The New York Times"
        assert site_name_from_domain("example.org") == "Example"

    def test_parse_url_metadata(self):
        payload = parse_url_metadata(
            {"url": "www.nytimes.com/2024/health/story.html", "title": "Story"},
            user_notes="<b>Featured</b> interview",
        )
        assert payload.url == "https://www.nytimes.com/2024/health/story.html"
        assert payload.publication == "The New York Times"
        assert payload.media_type == "news_article"
        assert payload.user_notes == "bFeatured/b interview"

    def test_upstream_free_text_is_sanitized(self):
        trial = parse_clinical_trial_study({
            "protocolSection": {
                "identificationModule": {"nctId": "NCT12345678", "briefTitle": "T"},
                "descriptionModule": {"briefSummary": "  <script>x</script> summary "},
            }
        })
        assert trial.brief_summary == "scriptx/script summary"

        article = parse_pubmed_article({"title": "T", "abstract": "<i>" + "a" * 2000 + "</i>"})
        assert article.abstract == "i" + "a" * 999
        assert parse_pubmed_article({"title": "T", "abstract": "  "}).abstract is None

        media = parse_url_metadata({"url": "https://example.com/a", "title": "A",
                                    "description": "<b>Bold</b> claim"}, max_length=8)
        assert media.description == "bBold/b"

    def test_media_payloads_skip_invalid_urls(self):
        payloads = media_payloads_from_metadata([
            {"url": "https://example.com/a", "title": "A"},
            {"url": "not a url", "title": "B"},
            {"title": "C"},
        ])
        assert [p.title for p in payloads] == ["A"]


if __name__ == "__main__":
    pytest.main([__file__])
