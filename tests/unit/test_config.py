"""Unit tests for configuration loading.

Tests defaults, policy parsing and error handling.
"""

import pytest

from leasebill.services import async_url
from leasebill.services.config import BillingConfig, ReopenPolicy, TotalPolicy, load_config

ENV_VARS = (
    "DATABASE_URL",
    "LOG_FILE",
    "TOTAL_POLICY",
    "REOPEN_POLICY",
    "BILL_ID_PREFIX",
    "BILL_ID_MAX_ATTEMPTS",
    "HOST",
    "PORT",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run in a directory without .env and with no billing variables set."""
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        # setenv first so values loaded from .env are undone as well
        monkeypatch.setenv(name, "unset")
        monkeypatch.delenv(name)
    return monkeypatch


class TestLoadConfig:
    """Tests for load_config function."""

    def test_defaults(self, clean_env):
        """Test that an empty environment yields the documented defaults."""
        config = load_config()

        assert config == BillingConfig()
        assert config.database_url == "sqlite:///./leasebill.db"
        assert config.total_policy is TotalPolicy.TRUST
        assert config.reopen_policy is ReopenPolicy.ALWAYS
        assert config.bill_id_prefix == "UPKYPBILL"
        assert config.bill_id_max_attempts == 5

    def test_policies_from_environment(self, clean_env):
        """Test that policy names are parsed case-insensitively."""
        clean_env.setenv("TOTAL_POLICY", "Strict")
        clean_env.setenv("REOPEN_POLICY", "on_total_change")

        config = load_config()

        assert config.total_policy is TotalPolicy.STRICT
        assert config.reopen_policy is ReopenPolicy.ON_TOTAL_CHANGE

    def test_invalid_total_policy(self, clean_env):
        """Test that an unknown policy raises ValueError listing the choices."""
        clean_env.setenv("TOTAL_POLICY", "sometimes")

        with pytest.raises(ValueError, match="Invalid TOTAL_POLICY.*trust, strict, derive"):
            load_config()

    def test_invalid_max_attempts(self, clean_env):
        """Test that a non-integer attempt count raises ValueError."""
        clean_env.setenv("BILL_ID_MAX_ATTEMPTS", "many")

        with pytest.raises(ValueError, match="BILL_ID_MAX_ATTEMPTS must be an integer"):
            load_config()

    def test_zero_max_attempts(self, clean_env):
        """Test that at least one attempt is required."""
        clean_env.setenv("BILL_ID_MAX_ATTEMPTS", "0")

        with pytest.raises(ValueError, match="must be at least 1"):
            load_config()

    def test_invalid_bill_id_prefix(self, clean_env):
        """Test that prefixes with separators are rejected."""
        clean_env.setenv("BILL_ID_PREFIX", "BILL-")

        with pytest.raises(ValueError, match="BILL_ID_PREFIX must be a non-empty alphanumeric"):
            load_config()

    def test_dotenv_file_is_read(self, clean_env, tmp_path):
        """Test that settings in .env are picked up."""
        (tmp_path / ".env").write_text("TOTAL_POLICY=derive\nBILL_ID_PREFIX=ACME\n")

        config = load_config()

        assert config.total_policy is TotalPolicy.DERIVE
        assert config.bill_id_prefix == "ACME"


class TestAsyncUrl:
    """Async driver selection for DATABASE_URL."""

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("sqlite:///./leasebill.db", "sqlite+aiosqlite:///./leasebill.db"),
            ("postgresql://user:pw@db/leasebill", "postgresql+asyncpg://user:pw@db/leasebill"),
            ("postgresql+asyncpg://db/leasebill", "postgresql+asyncpg://db/leasebill"),
        ],
    )
    def test_async_url(self, url, expected):
        assert async_url(url) == expected
