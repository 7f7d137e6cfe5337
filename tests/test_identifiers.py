"""
Identifier classification tests.

Run with: pytest tests/test_identifiers.py -v
"""
import pytest
from bson import ObjectId

from app.models.identity import ExternalRef, LocalRef, looks_like_local_id, parse_inquiry_ref


class TestLooksLikeLocalId:

    @pytest.mark.parametrize("value", [
        "65a1f0c2e4b0a1b2c3d4e5f6",
        "65A1F0C2E4B0A1B2C3D4E5F6",
        str(ObjectId()),
    ])
    def test_accepts_24_hex(self, value):
        assert looks_like_local_id(value) is True

    @pytest.mark.parametrize("value", [
        "ext-1",
        "65a1f0c2e4b0a1b2c3d4e5f",     # 23 chars
        "65a1f0c2e4b0a1b2c3d4e5f60",   # 25 chars
        "zza1f0c2e4b0a1b2c3d4e5f6",
        "",
        None,
        12345,
    ])
    def test_rejects_everything_else(self, value):
        assert looks_like_local_id(value) is False


class TestParseInquiryRef:

    def test_local_ref(self):
        ref = parse_inquiry_ref("65a1f0c2e4b0a1b2c3d4e5f6")
        assert isinstance(ref, LocalRef)
        assert ref.object_id == ObjectId("65a1f0c2e4b0a1b2c3d4e5f6")

    def test_external_ref(self):
        ref = parse_inquiry_ref("ext-42")
        assert isinstance(ref, ExternalRef)
        assert ref.value == "ext-42"

    def test_strips_whitespace(self):
        assert parse_inquiry_ref("  ext-42 ") == ExternalRef(value="ext-42")

    def test_numeric_external_id(self):
        assert parse_inquiry_ref("1024") == ExternalRef(value="1024")
