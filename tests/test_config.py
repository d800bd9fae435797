"""Tests for worksheet_fixer.config."""
import pytest

from worksheet_fixer.config import RepairConfig


def test_defaults() -> None:
    config = RepairConfig()
    assert config.disallowed_selector == '[data-js="mathEditor"]'
    assert config.text_compression_level == 9
    assert config.image_compression_level == 0


def test_from_env_reads_prefixed_variables() -> None:
    config = RepairConfig.from_env({
        "WORKSHEET_FIXER_TEXT_LEVEL": "6",
        "WORKSHEET_FIXER_META_AUTHOR": "ops",
        "WORKSHEET_FIXER_OUTPUT_DIR": "/tmp/fixed",
        "UNRELATED": "x",
    })

    assert config.text_compression_level == 6
    assert config.meta_author == "ops"
    assert config.output_dir == "/tmp/fixed"


def test_from_env_ignores_empty_values() -> None:
    config = RepairConfig.from_env({"WORKSHEET_FIXER_CHUNK_SIZE": ""})
    assert config.chunk_size == RepairConfig().chunk_size


def test_from_env_uses_process_environment(monkeypatch) -> None:
    monkeypatch.setenv("WORKSHEET_FIXER_DISALLOWED_SELECTOR", "iframe")
    assert RepairConfig.from_env().disallowed_selector == "iframe"


@pytest.mark.parametrize("env", [
    {"WORKSHEET_FIXER_TEXT_LEVEL": "10"},
    {"WORKSHEET_FIXER_IMAGE_LEVEL": "-1"},
    {"WORKSHEET_FIXER_CHUNK_SIZE": "0"},
    {"WORKSHEET_FIXER_TEXT_LEVEL": "max"},
])
def test_invalid_values_raise(env) -> None:
    with pytest.raises(ValueError):
        RepairConfig.from_env(env)
