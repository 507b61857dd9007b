#!/usr/bin/env python3
"""
Field normalizer tests: colours, JSON columns, flags and timestamps
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.normalizer import (
    coerce_flag,
    decode_json,
    decode_list,
    decode_tags,
    encode_json,
    extract_blocklist_roles,
    normalize_colour,
    normalize_timestamp,
    opaque_text,
)


@pytest.mark.unit
class TestNormalizeColour:

    @pytest.mark.parametrize("legacy, expected", [
        ("RED", "Red"),
        ("GREEN", "Green"),
        ("DARK_BUT_NOT_BLACK", "Dark_but_not_black"),
        ("Blurple", "Blurple"),
        ("#abc123", "#abc123"),
        ("#ABC123", "#ABC123"),
    ])
    def test_named_and_hex_colours(self, legacy, expected):
        assert normalize_colour(legacy) == expected

    @pytest.mark.parametrize("value", ["RED", "#009999", "gReEn", "x"])
    def test_idempotent(self, value):
        once = normalize_colour(value)
        assert normalize_colour(once) == once

    @pytest.mark.parametrize("value", [None, "", 0xFF0000])
    def test_non_colours_pass_through(self, value):
        assert normalize_colour(value) == value


@pytest.mark.unit
class TestJsonColumns:

    def test_decode_json_text(self):
        assert decode_json('{"roles": ["1"]}') == {"roles": ["1"]}

    def test_decode_json_already_structured(self):
        value = {"roles": ["1"]}
        assert decode_json(value) is value

    def test_decode_json_bytes(self):
        assert decode_json(b'["a", "b"]') == ["a", "b"]

    def test_decode_json_invalid_left_as_is(self):
        assert decode_json("not json") == "not json"

    def test_decode_json_missing_uses_default(self):
        assert decode_json(None, default=[]) == []
        assert decode_json("   ", default={}) == {}

    def test_blocklist_roles_extracted(self):
        blacklist = '{"members": ["10"], "roles": ["20", "30"]}'
        assert extract_blocklist_roles(blacklist) == ["20", "30"]

    @pytest.mark.parametrize("value", [None, "", "[]", '{"members": []}', '{"roles": "20"}', "garbage"])
    def test_blocklist_malformed_is_empty(self, value):
        assert extract_blocklist_roles(value) == []

    def test_decode_list(self):
        assert decode_list('["1", "2"]') == ["1", "2"]
        assert decode_list(None) == []
        assert decode_list('{"a": 1}') == []

    def test_decode_tags_keeps_order(self):
        tags = decode_tags('{"faq": "Read the FAQ", "rules": {"text": "Be nice"}}')
        assert tags == [("faq", "Read the FAQ"), ("rules", '{"text": "Be nice"}')]

    def test_decode_tags_non_object(self):
        assert decode_tags('["faq"]') == []

    def test_encode_json(self):
        assert encode_json(["1", "2"]) == '["1", "2"]'
        assert encode_json(None) is None
        assert encode_json('["1"]') == '["1"]'


@pytest.mark.unit
class TestFlagsAndText:

    @pytest.mark.parametrize("value, expected", [
        (1, True), (0, False), (None, False), ("1", True), ("", False), (True, True),
    ])
    def test_coerce_flag(self, value, expected):
        assert coerce_flag(value) is expected

    def test_opaque_text_string_unchanged(self):
        payload = '{"content": "hello", "embeds": []}'
        assert opaque_text(payload) == payload

    def test_opaque_text_structured(self):
        assert opaque_text({"content": "hi"}) == '{"content": "hi"}'

    def test_opaque_text_none(self):
        assert opaque_text(None) is None


@pytest.mark.unit
class TestNormalizeTimestamp:

    def test_sequelize_sqlite_format(self):
        parsed = normalize_timestamp("2022-01-31 18:05:12.345 +00:00")
        assert parsed == datetime(2022, 1, 31, 18, 5, 12, 345000, tzinfo=timezone.utc)

    def test_offset_converted_to_utc(self):
        parsed = normalize_timestamp("2022-01-31 20:05:12.000 +02:00")
        assert parsed == datetime(2022, 1, 31, 18, 5, 12, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_zulu_suffix(self):
        assert normalize_timestamp("2022-01-31T18:05:12Z") == datetime(2022, 1, 31, 18, 5, 12, tzinfo=timezone.utc)

    def test_naive_datetime_assumed_utc(self):
        parsed = normalize_timestamp(datetime(2022, 1, 31, 18, 5, 12))
        assert parsed.tzinfo is timezone.utc

    def test_empty(self):
        assert normalize_timestamp(None) is None
        assert normalize_timestamp("") is None

    def test_unparseable_passes_through(self):
        assert normalize_timestamp("yesterday") == "yesterday"
