"""Project form state, validation, and the submission controller.

``FormState`` is an immutable value object; every user action produces a new
state through one of its ``with_*`` transitions. ``FormController`` owns the
current state and is the only caller of the API client.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple

from portal_sdk.async_client import AsyncPortalClient
from portal_sdk.errors import PortalError
from portal_sdk.models import DEFAULT_ROLE, ApiResponse, ProjectSubmission, Role, UserGroup
from portal_sdk.sanitize import (
    PROJECT_NAME_MAX,
    PROJECT_NAME_MIN,
    PROJECT_NAME_RE,
    sanitize_description,
    sanitize_project_name,
    sanitize_user_id,
    split_user_ids,
)
from portal_sdk.settings import PortalSettings

logger = logging.getLogger(__name__)

CONNECTION_FAILED_MESSAGE = "Failed to connect to the server. Please check your connection and try again."
UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"
NO_DESCRIPTION = "No description provided"


class SubmissionStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class ValidationError(Exception):
    """User-correctable form error. Never reaches the network."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(message)


# ── State ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class GroupInput:
    user_ids: str = ""
    role: Optional[Role] = DEFAULT_ROLE

    @property
    def ids(self) -> List[str]:
        return split_user_ids(self.user_ids)


@dataclass(frozen=True)
class FormState:
    project_name: str = ""
    description: str = ""
    user_groups: Tuple[GroupInput, ...] = field(default_factory=lambda: (GroupInput(),))
    status: SubmissionStatus = SubmissionStatus.IDLE
    message: str = ""
    show_summary: bool = False

    @classmethod
    def empty(cls) -> "FormState":
        return cls()

    @property
    def total_users(self) -> int:
        return sum(len(g.ids) for g in self.user_groups)

    def can_add_group(self, max_users: int) -> bool:
        return self.total_users < max_users

    # ── Field edits ──────────────────────────────────────────────

    def with_project_name(self, value: str) -> "FormState":
        return replace(self, project_name=value)

    def with_description(self, value: str) -> "FormState":
        return replace(self, description=value)

    def with_group_added(self, max_users: int) -> "FormState":
        """Append an empty group. No-op once the user limit is reached."""
        if not self.can_add_group(max_users):
            return self
        return replace(self, user_groups=self.user_groups + (GroupInput(),))

    def with_group_removed(self, index: int) -> "FormState":
        """Drop a group. The last remaining group cannot be removed."""
        if len(self.user_groups) <= 1 or not 0 <= index < len(self.user_groups):
            return self
        groups = self.user_groups[:index] + self.user_groups[index + 1:]
        return replace(self, user_groups=groups)

    def with_group_updated(
        self,
        index: int,
        user_ids: Optional[str] = None,
        role: Optional[Role] = None,
    ) -> "FormState":
        group = self.user_groups[index]
        if user_ids is not None:
            group = replace(group, user_ids=user_ids)
        if role is not None:
            group = replace(group, role=role)
        groups = self.user_groups[:index] + (group,) + self.user_groups[index + 1:]
        return replace(self, user_groups=groups)

    # ── Status transitions ───────────────────────────────────────

    def reviewing(self) -> "FormState":
        return replace(self, show_summary=True, status=SubmissionStatus.IDLE, message="")

    def cancel_review(self) -> "FormState":
        return replace(self, show_summary=False)

    def loading(self) -> "FormState":
        return replace(self, status=SubmissionStatus.LOADING, message="")

    def succeeded(self, message: str) -> "FormState":
        return replace(self, status=SubmissionStatus.SUCCESS, message=message)

    def failed(self, message: str) -> "FormState":
        return replace(self, status=SubmissionStatus.ERROR, message=message)


# ── Validation ───────────────────────────────────────────────────

def validate_form(state: FormState, max_users: int) -> None:
    """Raise ValidationError for the first problem found, in display order."""
    name = state.project_name
    if not name.strip():
        raise ValidationError("project_name", "Project name is required.")
    if not PROJECT_NAME_RE.fullmatch(name):
        raise ValidationError(
            "project_name",
            "Project name can only contain lowercase letters, numbers, and hyphens.",
        )
    if not PROJECT_NAME_MIN <= len(name) <= PROJECT_NAME_MAX:
        raise ValidationError(
            "project_name",
            f"Project name must be {PROJECT_NAME_MIN}-{PROJECT_NAME_MAX} characters long.",
        )

    total = state.total_users
    if total == 0:
        raise ValidationError("user_groups", "At least one user must be specified.")
    if total > max_users:
        raise ValidationError("user_groups", f"Maximum {max_users} users allowed per project.")

    for group in state.user_groups:
        if not group.user_ids.strip():
            raise ValidationError("user_groups", "User IDs cannot be empty.")
        if group.role is None:
            raise ValidationError("user_groups", "Role must be selected for each group.")
        for user_id in group.ids:
            if sanitize_user_id(user_id) is None:
                if "@" in user_id:
                    raise ValidationError("user_groups", f"Invalid email format: {user_id}")
                raise ValidationError("user_groups", f"Invalid user ID format: {user_id}")


# ── Summary ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class GroupSummary:
    user_ids: str
    role_label: str


@dataclass(frozen=True)
class ProjectSummary:
    """Confirmation values, post-sanitization, exactly as they will be submitted."""

    project_name: str
    description: str
    groups: Tuple[GroupSummary, ...]
    total_users: int
    max_users: int


# ── Controller ───────────────────────────────────────────────────

class FormController:
    """Drives one project form through review and submission.

    At most one submission is in flight; ``submit`` is ignored while loading.
    """

    def __init__(self, settings: PortalSettings, client: Optional[AsyncPortalClient] = None) -> None:
        self._settings = settings
        self._client = client
        self.state = FormState.empty()
        self._reset_handle: Optional[asyncio.TimerHandle] = None

    @property
    def max_users(self) -> int:
        return self._settings.max_users_per_project

    @property
    def help_url(self) -> str:
        return self._settings.help_url

    @property
    def can_submit(self) -> bool:
        return self.state.status is not SubmissionStatus.LOADING

    # ── Editing ──────────────────────────────────────────────────

    def set_project_name(self, value: str) -> None:
        self.state = self.state.with_project_name(value)

    def set_description(self, value: str) -> None:
        self.state = self.state.with_description(value)

    def add_group(self) -> bool:
        """Add a user group. Returns False when the user limit is reached."""
        before = self.state
        self.state = self.state.with_group_added(self.max_users)
        return self.state is not before

    def remove_group(self, index: int) -> None:
        self.state = self.state.with_group_removed(index)

    def update_group(self, index: int, user_ids: Optional[str] = None, role: Optional[Role] = None) -> None:
        self.state = self.state.with_group_updated(index, user_ids=user_ids, role=role)

    # ── Review ───────────────────────────────────────────────────

    def review(self) -> bool:
        """Validate and open the summary. On failure, surface the message."""
        try:
            validate_form(self.state, self.max_users)
        except ValidationError as e:
            self.state = self.state.failed(e.message)
            return False
        self.state = self.state.reviewing()
        return True

    def cancel_review(self) -> None:
        self.state = self.state.cancel_review()

    def _normalized_groups(self) -> List[Tuple[str, Role]]:
        groups = []
        for g in self.state.user_groups:
            ids = [sanitize_user_id(i) or i for i in g.ids]
            groups.append((", ".join(ids), g.role or DEFAULT_ROLE))
        return groups

    def summary(self) -> ProjectSummary:
        """Confirmation values, identical to what ``submit`` will send."""
        state = self.state
        return ProjectSummary(
            project_name=sanitize_project_name(state.project_name) or state.project_name,
            description=sanitize_description(state.description) or NO_DESCRIPTION,
            groups=tuple(
                GroupSummary(user_ids=ids, role_label=role.label)
                for ids, role in self._normalized_groups()
            ),
            total_users=state.total_users,
            max_users=self.max_users,
        )

    def build_submission(self) -> ProjectSubmission:
        """Normalized request body. Call only after a successful review."""
        state = self.state
        return ProjectSubmission(
            app_id=sanitize_project_name(state.project_name) or state.project_name,
            description=sanitize_description(state.description),
            user_groups=[UserGroup(user_ids=ids, role=role) for ids, role in self._normalized_groups()],
        )

    # ── Submission ───────────────────────────────────────────────

    async def submit(self) -> FormState:
        """POST the project and move to success or error."""
        if self._client is None:
            raise RuntimeError("FormController has no API client; it can only validate")
        if not self.can_submit:
            logger.warning("Submission already in progress; ignoring duplicate submit")
            return self.state

        try:
            validate_form(self.state, self.max_users)
        except ValidationError as e:
            self.state = self.state.failed(e.message)
            return self.state

        submission = self.build_submission()
        self.state = self.state.loading()
        try:
            resp = await self._client.post(self._settings.create_project_url, submission)
            result = ApiResponse.model_validate(resp.json())
        except PortalError as e:
            logger.error("Project submission failed: %s: %s", type(e).__name__, e.message)
            self.state = self.state.failed(CONNECTION_FAILED_MESSAGE)
            return self.state
        except ValueError as e:
            logger.error("Project submission returned an unreadable response: %s", e)
            self.state = self.state.failed(CONNECTION_FAILED_MESSAGE)
            return self.state
        except asyncio.CancelledError:
            self.state = self.state.failed(CONNECTION_FAILED_MESSAGE)
            raise
        except Exception:
            logger.exception("Project submission failed unexpectedly")
            self.state = self.state.failed(CONNECTION_FAILED_MESSAGE)
            return self.state

        if result.success:
            self.state = self.state.succeeded(result.message)
            self._schedule_reset()
        else:
            self.state = self.state.failed(result.message or UNKNOWN_ERROR_MESSAGE)
        return self.state

    def _schedule_reset(self) -> None:
        loop = asyncio.get_running_loop()
        if self._reset_handle is not None:
            self._reset_handle.cancel()
        self._reset_handle = loop.call_later(self._settings.success_reset_ms / 1000, self.reset)

    def reset(self) -> None:
        """Clear every field and return to idle."""
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None
        self.state = FormState.empty()
