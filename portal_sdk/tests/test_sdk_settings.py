"""Tests for portal settings and models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from portal_sdk.models import ApiResponse, ProjectSubmission, Role, UserGroup
from portal_sdk.settings import DEFAULT_API_ENDPOINT, PortalSettings, load_settings


class TestLoadSettings:
    def test_defaults(self, monkeypatch):
        for var in ("PORTAL_API_ENDPOINT", "PORTAL_REQUEST_TIMEOUT_MS", "PORTAL_MAX_USERS_PER_PROJECT"):
            monkeypatch.delenv(var, raising=False)
        s = load_settings()
        assert s.api_endpoint == DEFAULT_API_ENDPOINT
        assert s.request_timeout_ms == 30_000
        assert s.max_users_per_project == 8

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("PORTAL_API_ENDPOINT", "https://api.example.com/prod")
        monkeypatch.setenv("PORTAL_REQUEST_TIMEOUT_MS", "1500")
        monkeypatch.setenv("PORTAL_DEBUG_MODE", "true")
        monkeypatch.setenv("PORTAL_AWS_REGION", "eu-west-1")
        s = load_settings()
        assert s.api_endpoint == "https://api.example.com/prod"
        assert s.request_timeout_ms == 1500
        assert s.debug_mode is True
        assert s.aws_region == "eu-west-1"

    def test_bad_int_falls_back(self, monkeypatch):
        monkeypatch.setenv("PORTAL_REQUEST_TIMEOUT_MS", "soon")
        assert load_settings().request_timeout_ms == 30_000

    def test_explicit_overrides_beat_env(self, monkeypatch):
        monkeypatch.setenv("PORTAL_MAX_USERS_PER_PROJECT", "3")
        assert load_settings(max_users_per_project=5).max_users_per_project == 5

    def test_unknown_override(self):
        with pytest.raises(TypeError):
            load_settings(no_such_field=1)

    def test_frozen(self):
        s = PortalSettings()
        with pytest.raises(Exception):
            s.api_endpoint = "https://other"  # type: ignore[misc]


class TestSettingsUrls:
    def test_urls_join_cleanly(self):
        s = PortalSettings(api_endpoint="https://api.example.com/prod/")
        assert s.create_project_url == "https://api.example.com/prod/api/create-project"
        assert s.health_url == "https://api.example.com/prod/health"


class TestSettingsMasking:
    def test_pool_id_masked(self):
        s = PortalSettings(identity_pool_id="us-east-1:secret-pool")
        assert "secret-pool" not in repr(s)
        assert s.to_dict()["identity_pool_id"] == "configured"

    def test_pool_id_unset(self):
        assert PortalSettings().to_dict()["identity_pool_id"] == "not set"


class TestRole:
    @pytest.mark.parametrize("value", ["project-editor", "editor", "Editor", " EDITOR "])
    def test_parse(self, value):
        assert Role.parse(value) is Role.EDITOR

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            Role.parse("admin")

    def test_labels(self):
        assert [r.label for r in Role] == ["Owner", "Editor", "Viewer"]
        assert Role.VIEWER.description == "Read-only access to project"


class TestModels:
    def test_submission_accepts_field_names_and_aliases(self):
        a = ProjectSubmission(app_id="abc", user_groups=[UserGroup(user_ids="bob", role=Role.OWNER)])
        b = ProjectSubmission.model_validate(
            {"appID": "abc", "userGroups": [{"userIds": "bob", "role": "project-owner"}]}
        )
        assert a == b

    @pytest.mark.parametrize("app_id", ["ab", "Bad-Name", "a" * 64])
    def test_submission_rejects_bad_app_id(self, app_id):
        with pytest.raises(ValidationError):
            ProjectSubmission(app_id=app_id, user_groups=[UserGroup(user_ids="bob", role=Role.OWNER)])

    def test_submission_requires_group(self):
        with pytest.raises(ValidationError):
            ProjectSubmission(app_id="abc", user_groups=[])

    def test_api_response_message_optional(self):
        assert ApiResponse.model_validate({"success": False}).message == ""
