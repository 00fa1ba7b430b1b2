# backend/tests/test_config.py
from __future__ import annotations

import pytest

from rentledger.config import Settings


def test_prod_refuses_dev_auth():
    with pytest.raises(ValueError):
        Settings(app_env="prod", auth_mode="dev", cors_allow_origins=["https://app.example"])


def test_prod_refuses_wildcard_cors():
    with pytest.raises(ValueError):
        Settings(app_env="prod", auth_mode="jwt", jwt_secret="s" * 40, cors_allow_origins="*")


def test_rent_defaults():
    s = Settings(app_env="test")
    assert s.default_due_day == 1
    assert s.default_increase_type == "contract_based"
    assert s.pending_increase_window_days == 90
    assert s.urgent_increase_days == 30


def test_due_day_must_fit_a_month():
    with pytest.raises(ValueError):
        Settings(app_env="test", default_due_day=32)


def test_prod_needs_its_own_jwt_secret():
    with pytest.raises(ValueError):
        Settings(app_env="prod", auth_mode="jwt", cors_allow_origins=["https://app.example"])

    s = Settings(app_env="prod", auth_mode="jwt", jwt_secret="s" * 40, cors_allow_origins=["https://app.example"])
    assert s.auth_mode == "jwt"
