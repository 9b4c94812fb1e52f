import json
from pathlib import Path

import pytest

from config import ProfileNotConfiguredError, Settings, get_settings, load_profile_file


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("BILLING_DEFAULT_STATE_CODE", "27")
    monkeypatch.setenv("BILLING_DATABASE_URL", "sqlite:///:memory:")
    settings = Settings()
    assert settings.default_state_code == "27"
    assert settings.database_url == "sqlite:///:memory:"


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("BILLING_DEFAULT_STATE_CODE", raising=False)
    get_settings.cache_clear()
    assert get_settings().default_state_code == "24"
    assert get_settings() is get_settings()


def test_load_profile_object(tmp_path):
    path = tmp_path / "profile.json"
    path.write_text(json.dumps({"name": "ACME", "gstin": "24AAA", "license_numbers": ["A", "", "B", "C", "D", "E"],
                                "unknown_key": 1}))
    profile = load_profile_file(path)
    assert profile.name == "ACME"
    assert profile.license_numbers == ("A", "B", "C", "D")


def test_load_profile_single_element_list(tmp_path):
    path = tmp_path / "profile.json"
    path.write_text(json.dumps([{"name": "ACME"}]))
    assert load_profile_file(path).name == "ACME"


@pytest.mark.parametrize("content", ["[]", '[{"name": "A"}, {"name": "B"}]'])
def test_load_profile_needs_exactly_one(tmp_path, content):
    path = tmp_path / "profile.json"
    path.write_text(content)
    with pytest.raises(ProfileNotConfiguredError):
        load_profile_file(path)


def test_load_profile_missing_file(tmp_path):
    with pytest.raises(ProfileNotConfiguredError):
        load_profile_file(tmp_path / "nope.json")


def test_shipped_profile_loads():
    profile = load_profile_file(Path(__file__).parent.parent / "company_profile.json")
    assert profile.gstin.startswith("24")
    assert len(profile.license_numbers) == 4
