"""Repo-wide test fixtures.

Snapshots and restores sensitive environment variables between tests
so settings loaded in one test never leak into the next.
"""

from __future__ import annotations

import os

import pytest

_SENSITIVE_ENV_VARS = [
    "PORTAL_API_ENDPOINT",
    "PORTAL_REQUEST_TIMEOUT_MS",
    "PORTAL_IDENTITY_POOL_ID",
    "PORTAL_AWS_REGION",
    "PORTAL_SIGNING_SERVICE",
    "PORTAL_MAX_USERS_PER_PROJECT",
    "PORTAL_SUCCESS_RESET_MS",
    "PORTAL_HELP_URL",
    "PORTAL_VERSION",
    "PORTAL_ENVIRONMENT",
    "PORTAL_DEBUG_MODE",
    "PORTAL_ANALYTICS",
    "PORTAL_LOG_FORMAT",
]


@pytest.fixture(autouse=True)
def _restore_env():
    """Snapshot sensitive env vars before each test and restore after."""
    snapshot = {}
    for var in _SENSITIVE_ENV_VARS:
        val = os.environ.get(var)
        if val is not None:
            snapshot[var] = val

    yield

    # Restore: remove any that were added, reset any that changed
    for var in _SENSITIVE_ENV_VARS:
        if var in snapshot:
            os.environ[var] = snapshot[var]
        else:
            os.environ.pop(var, None)
