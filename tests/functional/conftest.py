"""Functional test bootstrap.

Provides fresh backend mocks and the sample FastAPI service per test. The
harness configuration is built explicitly so a stray `litmus_config.json`
or LITMUS_* variable on the developer's machine cannot change results.
"""

from __future__ import annotations

import pytest

from litmus.config import ClientConfig, HarnessConfig, ServerConfig
from sample_service import AuditLog, UserStore, create_app


@pytest.fixture()
def users() -> UserStore:
    return UserStore()


@pytest.fixture()
def audit() -> AuditLog:
    return AuditLog()


@pytest.fixture()
def app(users: UserStore, audit: AuditLog):
    return create_app(users, audit)


@pytest.fixture()
def harness_config() -> HarnessConfig:
    return HarnessConfig(
        server=ServerConfig(startup_timeout=10.0, shutdown_timeout=5.0),
        client=ClientConfig(timeout=5.0, max_redirects=3),
    )
