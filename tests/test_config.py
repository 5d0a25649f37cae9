"""Tests for the environment parsing helpers in config."""

from __future__ import annotations

import pytest

import config


class TestEnvFloat:
    def test_unset_uses_default(self, monkeypatch) -> None:
        monkeypatch.delenv("MOVA_TEST_SECONDS", raising=False)
        assert config._env_float("MOVA_TEST_SECONDS", 120.0) == 120.0

    def test_positive_value_is_used(self, monkeypatch) -> None:
        monkeypatch.setenv("MOVA_TEST_SECONDS", "7.5")
        assert config._env_float("MOVA_TEST_SECONDS", 120.0) == 7.5

    @pytest.mark.parametrize("raw", ["-1", "0", "soon"])
    def test_unusable_value_falls_back_to_default(self, monkeypatch, raw: str) -> None:
        monkeypatch.setenv("MOVA_TEST_SECONDS", raw)
        assert config._env_float("MOVA_TEST_SECONDS", 120.0) == 120.0


class TestEnvModels:
    def test_comma_separated_list_keeps_order(self, monkeypatch) -> None:
        monkeypatch.setenv("MOVA_TEST_MODELS", " model-b, ,model-a ")
        assert config._env_models("MOVA_TEST_MODELS", ("x",)) == ("model-b", "model-a")

    def test_blank_list_uses_default(self, monkeypatch) -> None:
        monkeypatch.setenv("MOVA_TEST_MODELS", " , ")
        assert config._env_models("MOVA_TEST_MODELS", ("x",)) == ("x",)
