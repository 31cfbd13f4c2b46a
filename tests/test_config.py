import pathlib
import sys

import pytest

# Ensure src package is on path
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from wedding_seating.config import (
    ConfigurationError,
    load_config,
    load_optimizer_config,
    parse_config,
)
from wedding_seating.models import OptimizationCriteria, OptimizerSettings

DATA_DIR = pathlib.Path(__file__).parent / "data"


def test_load_optimizer_config():
    criteria, settings = load_optimizer_config(DATA_DIR / "config.yaml")
    assert criteria.mix_guest_sides is True
    assert criteria.balance_table_ages is False
    assert criteria.prioritize_family_groups is True
    assert settings.population_size == 30
    assert settings.max_generations == 40
    assert settings.seed == 7
    assert settings.mutation_rate == OptimizerSettings().mutation_rate


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == {}
    criteria, settings = load_optimizer_config(path)
    assert criteria == OptimizationCriteria()
    assert settings == OptimizerSettings()


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(tmp_path / "missing.yaml")


def test_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("criteria: [unclosed\n")
    with pytest.raises(ConfigurationError):
        load_config(path)


@pytest.mark.parametrize("config", [
    {"criteria": {"keep_everyone_happy": True}},
    {"settings": {"population": 10}},
    {"criteria": {"mix_guest_sides": "yes"}},
    {"criteria": ["mix_guest_sides"]},
    {"settings": {"mutation_rate": 3.0}},
])
def test_parse_config_rejects(config):
    with pytest.raises(ConfigurationError):
        parse_config(config)


def test_parse_config_overrides_given_values():
    base = OptimizerSettings(population_size=50)
    _, settings = parse_config({"settings": {"max_generations": 10}}, settings=base)
    assert settings.population_size == 50
    assert settings.max_generations == 10
