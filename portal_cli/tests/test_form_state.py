"""Tests for FormState transitions and form validation."""

from __future__ import annotations

import pytest

from portal_cli.form import FormState, GroupInput, SubmissionStatus, ValidationError, validate_form
from portal_sdk.models import DEFAULT_ROLE, Role

MAX_USERS = 8


def _state(name="my-project", *groups: GroupInput) -> FormState:
    return FormState(project_name=name, user_groups=groups or (GroupInput("alice@example.com", Role.OWNER),))


def _error(state: FormState) -> str:
    with pytest.raises(ValidationError) as exc_info:
        validate_form(state, MAX_USERS)
    return exc_info.value.message


class TestFormStateTransitions:
    def test_empty(self):
        s = FormState.empty()
        assert s.project_name == ""
        assert s.description == ""
        assert s.user_groups == (GroupInput("", DEFAULT_ROLE),)
        assert s.status is SubmissionStatus.IDLE
        assert s.message == ""
        assert s.show_summary is False

    def test_default_role_is_owner(self):
        assert FormState.empty().user_groups[0].role is Role.OWNER

    def test_edits_return_new_state(self):
        s = FormState.empty()
        t = s.with_project_name("abc").with_description("hello")
        assert s.project_name == ""
        assert (t.project_name, t.description) == ("abc", "hello")

    def test_total_users_counts_non_blank_ids(self):
        s = _state("abc", GroupInput("a@x.com, bob,, "), GroupInput("carol"))
        assert s.total_users == 3

    def test_add_group(self):
        s = FormState.empty().with_group_added(MAX_USERS)
        assert len(s.user_groups) == 2
        assert s.user_groups[1] == GroupInput()

    def test_add_group_blocked_at_limit(self):
        ids = ",".join(f"user{i}" for i in range(MAX_USERS))
        s = _state("abc", GroupInput(ids))
        assert s.can_add_group(MAX_USERS) is False
        assert s.with_group_added(MAX_USERS) is s

    def test_remove_group(self):
        s = _state("abc", GroupInput("a"), GroupInput("b"), GroupInput("c"))
        t = s.with_group_removed(1)
        assert [g.user_ids for g in t.user_groups] == ["a", "c"]

    def test_last_group_cannot_be_removed(self):
        s = FormState.empty()
        assert s.with_group_removed(0) is s

    def test_remove_out_of_range_is_noop(self):
        s = _state("abc", GroupInput("a"), GroupInput("b"))
        assert s.with_group_removed(5) is s

    def test_update_group(self):
        s = FormState.empty().with_group_updated(0, user_ids="bob", role=Role.VIEWER)
        assert s.user_groups[0] == GroupInput("bob", Role.VIEWER)

    def test_update_keeps_unspecified_fields(self):
        s = FormState.empty().with_group_updated(0, role=Role.EDITOR).with_group_updated(0, user_ids="x1")
        assert s.user_groups[0] == GroupInput("x1", Role.EDITOR)

    def test_status_transitions(self):
        s = FormState.empty().reviewing()
        assert s.show_summary is True
        s = s.loading()
        assert s.status is SubmissionStatus.LOADING
        ok = s.succeeded("done")
        assert (ok.status, ok.message) == (SubmissionStatus.SUCCESS, "done")
        bad = s.failed("nope")
        assert (bad.status, bad.message) == (SubmissionStatus.ERROR, "nope")
        assert s.cancel_review().show_summary is False

    def test_reviewing_clears_previous_error(self):
        s = FormState.empty().failed("old error").reviewing()
        assert s.status is SubmissionStatus.IDLE
        assert s.message == ""


class TestValidateForm:
    def test_valid(self):
        validate_form(_state("test-project", GroupInput("user@example.com, bob_1", Role.EDITOR)), MAX_USERS)

    @pytest.mark.parametrize("name", ["", "   "])
    def test_name_required(self, name):
        assert _error(_state(name)) == "Project name is required."

    @pytest.mark.parametrize("name", ["My-Project", "my_project", "my project", "proj!"])
    def test_name_charset(self, name):
        assert _error(_state(name)) == "Project name can only contain lowercase letters, numbers, and hyphens."

    @pytest.mark.parametrize("name", ["ab", "a" * 64])
    def test_name_length(self, name):
        assert _error(_state(name)) == "Project name must be 3-63 characters long."

    def test_no_users(self):
        assert _error(_state("abc", GroupInput("  , "))) == "At least one user must be specified."

    def test_too_many_users(self):
        ids = ",".join(f"user{i}" for i in range(MAX_USERS + 1))
        assert _error(_state("abc", GroupInput(ids))) == "Maximum 8 users allowed per project."

    def test_exactly_max_users_is_valid(self):
        ids = ",".join(f"user{i}" for i in range(MAX_USERS))
        validate_form(_state("abc", GroupInput(ids)), MAX_USERS)

    def test_empty_group(self):
        s = _state("abc", GroupInput("alice"), GroupInput(""))
        assert _error(s) == "User IDs cannot be empty."

    def test_role_required(self):
        assert _error(_state("abc", GroupInput("alice", None))) == "Role must be selected for each group."

    def test_invalid_email(self):
        assert _error(_state("abc", GroupInput("alice, bad@"))) == "Invalid email format: bad@"

    def test_invalid_user_id(self):
        assert _error(_state("abc", GroupInput("x"))) == "Invalid user ID format: x"

    def test_name_checked_before_users(self):
        assert _error(_state("", GroupInput(""))) == "Project name is required."

    def test_error_field(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_form(_state("ab"), MAX_USERS)
        assert exc_info.value.field == "project_name"
