"""
Preset persona definitions for synthetic student simulation.

Personas and persona sets are declared in YAML files under ``params/``. Every
file contributes its personas and sets to one shared library.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from omegaconf import MISSING, OmegaConf
from pydantic import BaseModel, ConfigDict

from calibration_service.core.constants import DEFAULT_PERSONA_TEMPERATURE
from calibration_service.core.data_models import Persona, PersonaCategory

PARAMS_DIR = Path(__file__).parent / "params"


@dataclass
class PersonaConfig:
    id: str = MISSING
    name: str = MISSING
    theta: float = MISSING
    system_prompt: str = MISSING
    temperature: float = DEFAULT_PERSONA_TEMPERATURE
    category: str = PersonaCategory.CUSTOM.value
    description: str = ""


@dataclass
class PersonaSetConfig:
    id: str = MISSING
    name: str = MISSING
    description: str = ""
    persona_ids: list[str] = field(default_factory=list)


@dataclass
class PersonaLibraryConfig:
    personas: list[PersonaConfig] = field(default_factory=list)
    sets: list[PersonaSetConfig] = field(default_factory=list)


class PersonaSet(BaseModel):
    """A named group of personas used together in a calibration run."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    personas: tuple[Persona, ...]


class PersonaSetSummary(BaseModel):
    id: str
    name: str
    count: int


def load_persona_library(yaml_path: Path) -> PersonaLibraryConfig:
    """Load and validate a persona library from YAML.

    Raises:
        FileNotFoundError: If yaml_path doesn't exist
    """
    if not yaml_path.exists():
        raise FileNotFoundError(f"Persona file not found: {yaml_path}")

    schema = OmegaConf.structured(PersonaLibraryConfig)
    config = OmegaConf.merge(schema, OmegaConf.load(yaml_path))

    result = OmegaConf.to_object(config)
    assert isinstance(result, PersonaLibraryConfig)
    return result


def _to_persona(config: PersonaConfig) -> Persona:
    return Persona(
        id=config.id,
        name=config.name,
        theta=config.theta,
        system_prompt=config.system_prompt,
        temperature=config.temperature,
        category=PersonaCategory(config.category),
        description=config.description or None,
    )


@lru_cache(maxsize=1)
def _load_presets() -> tuple[dict[str, Persona], dict[str, PersonaSet]]:
    personas: dict[str, Persona] = {}
    set_configs: list[PersonaSetConfig] = []
    for path in sorted(PARAMS_DIR.glob("*.yaml")):
        library = load_persona_library(path)
        for persona_config in library.personas:
            persona = _to_persona(persona_config)
            if persona.id in personas:
                raise ValueError(f"Duplicate persona id: {persona.id}")
            personas[persona.id] = persona
        set_configs.extend(library.sets)

    sets: dict[str, PersonaSet] = {}
    for set_config in set_configs:
        unknown = [pid for pid in set_config.persona_ids if pid not in personas]
        if unknown:
            raise ValueError(
                f"Persona set {set_config.id} references unknown personas: {unknown}"
            )
        sets[set_config.id] = PersonaSet(
            id=set_config.id,
            name=set_config.name,
            description=set_config.description,
            personas=tuple(personas[pid] for pid in set_config.persona_ids),
        )
    return personas, sets


def get_all_personas(category: PersonaCategory | None = None) -> list[Persona]:
    personas, _ = _load_presets()
    return [
        p for p in personas.values() if category is None or p.category == category
    ]


def get_persona(persona_id: str) -> Persona | None:
    personas, _ = _load_presets()
    return personas.get(persona_id)


def get_available_persona_sets() -> list[str]:
    _, sets = _load_presets()
    return list(sets)


def get_persona_set(name: str) -> PersonaSet:
    """Get a persona set by id."""
    _, sets = _load_presets()
    if name not in sets:
        raise ValueError(
            f"Unknown persona set: {name}. "
            f"Available sets: {get_available_persona_sets()}"
        )
    return sets[name]


def list_persona_sets() -> list[PersonaSetSummary]:
    _, sets = _load_presets()
    return [
        PersonaSetSummary(id=s.id, name=s.name, count=len(s.personas))
        for s in sets.values()
    ]
