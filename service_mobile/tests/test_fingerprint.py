"""
Unit tests for payload fingerprints and ETag comparison.
"""

import re

import pytest

from service_mobile.app.caching.fingerprint import (
    CARD_FIELDS,
    FingerprintRegistry,
    default_registry,
    etags_match,
    fingerprint,
)


class TestFingerprint:
    """Test cases for fingerprint()."""

    def test_format(self):
        tag = fingerprint({"a": 1}, ["a"], prefix="radio")

        assert re.fullmatch(r'"radio-[0-9a-f]{12}"', tag)

    def test_equal_on_significant_fields(self):
        p1 = {"stream_url": "https://a", "station_name": "X", "last_tested": "t1"}
        p2 = {"stream_url": "https://a", "station_name": "X", "last_tested": "t2"}

        assert fingerprint(p1, ["stream_url", "station_name"]) == fingerprint(p2, ["stream_url", "station_name"])

    def test_differs_when_significant_field_differs(self):
        p1 = {"stream_url": "https://a", "station_name": "X"}
        p2 = {"stream_url": "https://b", "station_name": "X"}

        assert fingerprint(p1, ["stream_url", "station_name"]) != fingerprint(p2, ["stream_url", "station_name"])

    def test_key_order_irrelevant(self):
        assert fingerprint({"a": 1, "b": 2}) == fingerprint({"b": 2, "a": 1})

    def test_missing_field_treated_as_empty_string(self):
        assert fingerprint({"a": 1}, ["a", "b"]) == fingerprint({"a": 1, "b": ""}, ["a", "b"])
        assert fingerprint({"a": 1}, ["a", "b"]) == fingerprint({"a": 1, "b": None}, ["a", "b"])

    def test_adding_a_field_to_the_list_changes_digest(self):
        assert fingerprint({"a": 1}, ["a"]) != fingerprint({"a": 1}, ["a", "b"])

    def test_list_payload_projected_per_element(self):
        cards_v1 = [{"id": 1, "title": "A", "extra": 1}, {"id": 2, "title": "B", "extra": 2}]
        cards_v2 = [{"id": 1, "title": "A", "extra": 9}, {"id": 2, "title": "B", "extra": 9}]
        cards_v3 = [{"id": 1, "title": "A2"}, {"id": 2, "title": "B"}]

        assert fingerprint(cards_v1, ["id", "title"]) == fingerprint(cards_v2, ["id", "title"])
        assert fingerprint(cards_v1, ["id", "title"]) != fingerprint(cards_v3, ["id", "title"])

    def test_length_option(self):
        assert len(fingerprint({"a": 1}, length=16)) == len('"resource-"') + 16


class TestEtagsMatch:
    """Test cases for etags_match()."""

    @pytest.mark.parametrize("header", [
        '"radio-abc"',
        'W/"radio-abc"',
        'radio-abc',
        '"other", "radio-abc"',
        '*',
    ])
    def test_matches(self, header):
        assert etags_match(header, '"radio-abc"')

    @pytest.mark.parametrize("header", [None, "", '"radio-abd"', '"x", "y"'])
    def test_no_match(self, header):
        assert not etags_match(header, '"radio-abc"')


class TestFingerprintRegistry:
    """Test cases for the per-resource allow-list."""

    def test_default_registry_covers_served_resources(self):
        registry = default_registry()

        assert registry.resources() == ["card", "cards", "news", "polls", "radio", "settings"]
        assert "last_tested" not in registry.fields_for("radio")
        assert registry.fields_for("cards") == list(CARD_FIELDS)

    def test_card_fields_track_mobile_card_model(self):
        """Every field the app shows on a card participates in its ETag."""
        from service_mobile.app.domain.models import MobileCard

        shown = set(MobileCard.model_fields) - {"createdAt"}
        assert shown == set(CARD_FIELDS)

    def test_settings_fields_track_settings_model(self):
        from service_mobile.app.domain.models import MobileSettings

        assert set(default_registry().fields_for("settings")) == set(MobileSettings.model_fields)

    def test_poll_fields_track_poll_model(self):
        from service_mobile.app.domain.models import MobilePoll

        assert set(default_registry().fields_for("polls")) == set(MobilePoll.model_fields)

    def test_radio_fields_track_radio_model(self):
        from service_mobile.app.domain.models import MobileRadioConfig

        shown = set(MobileRadioConfig.model_fields) - {"last_tested"}
        assert set(default_registry().fields_for("radio")) == shown

    def test_poll_type_change_moves_poll_etag(self):
        registry = default_registry()
        poll = {"id": 7, "title": "Haftanın şarkısı", "pollType": "weekly", "items": []}

        assert registry.fingerprint("polls", poll) != registry.fingerprint("polls", {**poll, "pollType": "monthly"})

    def test_unknown_resource(self):
        with pytest.raises(KeyError):
            FingerprintRegistry().fields_for("missing")

    def test_whole_payload_resource(self):
        registry = FingerprintRegistry({"blob": None})

        assert registry.fingerprint("blob", {"a": 1}) != registry.fingerprint("blob", {"a": 2})
