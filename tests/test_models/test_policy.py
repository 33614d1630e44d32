"""Tests for LTOPolicy environment parsing."""

import pytest
from pydantic import ValidationError

from ltovariants.models import LTOPolicy


class TestLTOPolicyDefaults:
    """Tests for defaults with a clean environment."""

    def test_defaults(self):
        """ThinLTO is on by default, everything else off."""
        policy = LTOPolicy()
        assert policy.disable_lto is False
        assert policy.global_thinlto is True
        assert policy.use_thinlto_cache is False
        assert policy.out_dir == "out"

    def test_frozen(self):
        """The policy cannot change mid-pass."""
        policy = LTOPolicy()
        with pytest.raises(ValidationError):
            policy.disable_lto = True


class TestLTOPolicyEnvironment:
    """Tests for reading the build environment."""

    @pytest.mark.parametrize("value", ["1", "true", "TRUE"])
    def test_disable_lto_true_values(self, monkeypatch, value):
        monkeypatch.setenv("DISABLE_LTO", value)
        assert LTOPolicy().disable_lto is True

    @pytest.mark.parametrize("value", ["0", "false", "", "yes"])
    def test_disable_lto_other_values(self, monkeypatch, value):
        """Only 1/true enable the kill switch."""
        monkeypatch.setenv("DISABLE_LTO", value)
        assert LTOPolicy().disable_lto is False

    @pytest.mark.parametrize("value", ["0", "false"])
    def test_global_thinlto_false_values(self, monkeypatch, value):
        monkeypatch.setenv("GLOBAL_THINLTO", value)
        assert LTOPolicy().global_thinlto is False

    @pytest.mark.parametrize("value", ["1", "true", "", "maybe"])
    def test_global_thinlto_other_values(self, monkeypatch, value):
        """Anything but 0/false keeps ThinLTO on by default."""
        monkeypatch.setenv("GLOBAL_THINLTO", value)
        assert LTOPolicy().global_thinlto is True

    def test_thinlto_cache_and_out_dir(self, monkeypatch):
        monkeypatch.setenv("USE_THINLTO_CACHE", "true")
        monkeypatch.setenv("OUT_DIR", "/build/out")
        policy = LTOPolicy()
        assert policy.use_thinlto_cache is True
        assert policy.out_dir == "/build/out"

    def test_keyword_arguments_override_environment(self, monkeypatch):
        """Explicit values win over the environment."""
        monkeypatch.setenv("DISABLE_LTO", "true")
        assert LTOPolicy(disable_lto=False).disable_lto is False
