from calibration_service.personas.presets import (
    PersonaSet,
    PersonaSetSummary,
    get_all_personas,
    get_available_persona_sets,
    get_persona,
    get_persona_set,
    list_persona_sets,
)
from calibration_service.personas.prompts import (
    Misconception,
    build_kli_persona,
    build_misconception_persona,
    generate_kli_prompt,
    generate_misconception_prompt,
)

__all__ = [
    "Misconception",
    "PersonaSet",
    "PersonaSetSummary",
    "build_kli_persona",
    "build_misconception_persona",
    "generate_kli_prompt",
    "generate_misconception_prompt",
    "get_all_personas",
    "get_available_persona_sets",
    "get_persona",
    "get_persona_set",
    "list_persona_sets",
]
