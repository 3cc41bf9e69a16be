"""
Tests for YAML-backed persona presets.
"""

from pathlib import Path

import pytest

from calibration_service.core.data_models import PersonaCategory
from calibration_service.personas import (
    get_all_personas,
    get_available_persona_sets,
    get_persona,
    get_persona_set,
    list_persona_sets,
)
from calibration_service.personas.presets import load_persona_library


class TestPresets:
    def test_available_sets(self) -> None:
        assert set(get_available_persona_sets()) >= {
            "standard-ability",
            "full-ability",
            "minimal",
        }

    def test_standard_ability_order(self) -> None:
        persona_set = get_persona_set("standard-ability")
        assert [p.id for p in persona_set.personas] == [
            "expert",
            "proficient",
            "developing",
            "struggling",
            "novice",
        ]

    def test_theta_decreases_and_temperature_increases(self) -> None:
        personas = get_persona_set("standard-ability").personas
        thetas = [p.theta for p in personas]
        temperatures = [p.temperature for p in personas]
        assert thetas == sorted(thetas, reverse=True)
        assert temperatures == sorted(temperatures)

    def test_full_ability_includes_random_baseline(self) -> None:
        personas = get_persona_set("full-ability").personas
        assert len(personas) == 6
        assert personas[-1].is_random_baseline

    def test_get_persona(self) -> None:
        expert = get_persona("expert")
        assert expert is not None
        assert expert.theta == 2.5
        assert expert.temperature == 0.1
        assert expert.category == PersonaCategory.ABILITY_BASED
        assert "A, B, C, or D" in expert.system_prompt
        assert get_persona("nobody") is None

    def test_unknown_set(self) -> None:
        with pytest.raises(ValueError, match="Unknown persona set"):
            get_persona_set("nonexistent")

    def test_list_persona_sets_counts(self) -> None:
        counts = {s.id: s.count for s in list_persona_sets()}
        assert counts["minimal"] == 3
        assert counts["standard-ability"] == 5

    def test_all_personas_unique(self) -> None:
        ids = [p.id for p in get_all_personas()]
        assert len(ids) == len(set(ids))

    def test_filter_by_category(self) -> None:
        ability = get_all_personas(category=PersonaCategory.ABILITY_BASED)
        assert {p.id for p in ability} >= {"expert", "novice"}
        assert all(p.category == PersonaCategory.ABILITY_BASED for p in ability)
        assert get_all_personas(category=PersonaCategory.MISCONCEPTION) == []


class TestLoadPersonaLibrary:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_persona_library(tmp_path / "missing.yaml")

    def test_defaults_applied(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.yaml"
        path.write_text(
            "personas:\n"
            "  - id: tutor\n"
            "    name: Tutor\n"
            "    theta: 1.5\n"
            "    system_prompt: You teach.\n"
        )
        library = load_persona_library(path)
        assert len(library.personas) == 1
        assert library.personas[0].temperature == 0.3
        assert library.personas[0].category == "custom"
        assert library.sets == []
