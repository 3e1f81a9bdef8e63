from __future__ import annotations

import pytest

from abac.settings import DEFAULT_INTERNAL_NETWORKS, AbacSettings, load_settings


class TestDefaults:
    def test_defaults(self):
        settings = AbacSettings()
        assert settings.business_hours_start == 8
        assert settings.business_hours_end == 18
        assert settings.business_timezone == "UTC"
        assert settings.internal_networks == DEFAULT_INTERNAL_NETWORKS

    def test_from_empty_mapping_uses_defaults(self):
        assert AbacSettings.from_mapping(None) == AbacSettings()
        assert AbacSettings.from_mapping({}) == AbacSettings()


class TestFromMapping:
    def test_overrides(self):
        settings = AbacSettings.from_mapping(
            {
                "BUSINESS_HOURS_START": 9,
                "BUSINESS_HOURS_END": 17,
                "BUSINESS_TIMEZONE": "Europe/Berlin",
                "INTERNAL_NETWORKS": ["10.1.0.0/16"],
                "ATTRIBUTE_CACHE_TTL_SECONDS": 60,
                "ATTRIBUTE_CACHE_MAX_SIZE": 10,
            }
        )
        assert settings.business_hours_start == 9
        assert settings.business_timezone == "Europe/Berlin"
        assert settings.internal_networks == ("10.1.0.0/16",)
        assert settings.attribute_cache_ttl_seconds == 60

    def test_load_settings_reads_django_settings(self, settings):
        settings.ABAC = {"BUSINESS_HOURS_START": 7}
        assert load_settings().business_hours_start == 7


class TestValidation:
    @pytest.mark.parametrize("hour", [-1, 25, True, "8"])
    def test_rejects_invalid_hours(self, hour):
        with pytest.raises(ValueError, match="business_hours_start"):
            AbacSettings(business_hours_start=hour)

    def test_rejects_unknown_timezone(self):
        with pytest.raises(ValueError, match="not a known timezone"):
            AbacSettings(business_timezone="Mars/Olympus")

    def test_rejects_invalid_cidr(self):
        with pytest.raises(ValueError, match="not a valid CIDR"):
            AbacSettings(internal_networks=("10.0.0.0/33",))

    def test_rejects_single_string_networks(self):
        with pytest.raises(ValueError, match="sequence of CIDR strings"):
            AbacSettings(internal_networks="10.0.0.0/8")

    @pytest.mark.parametrize(
        "field", ["attribute_cache_ttl_seconds", "attribute_cache_max_size"]
    )
    def test_rejects_non_positive_cache_limits(self, field):
        with pytest.raises(ValueError, match=field):
            AbacSettings(**{field: 0})
