"""
System-prompt builders for knowledge-state and misconception personas.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from calibration_service.core.data_models import Persona, PersonaCategory

ANSWER_FORMAT_INSTRUCTION = (
    "Provide your answer as a single letter (A, B, C, or D)."
)
DEFAULT_KLI_TEMPERATURE = 0.5
DEFAULT_MISCONCEPTION_TEMPERATURE = 0.5


@dataclass(frozen=True)
class Misconception:
    concept: str
    incorrect_belief: str


def generate_kli_prompt(
    mastered: Sequence[str],
    confused: Sequence[str],
    unknown: Sequence[str],
) -> str:
    """Describe a knowledge state in terms of mastered, confused and unknown concepts."""
    prompt = "You are a student with the following knowledge state:\n\n"

    if mastered:
        prompt += f"You UNDERSTAND these concepts well: {', '.join(mastered)}\n"
    if confused:
        prompt += (
            "You are CONFUSED about these concepts and often make mistakes "
            f"with them: {', '.join(confused)}\n"
        )
    if unknown:
        prompt += f"You have NOT LEARNED these concepts yet: {', '.join(unknown)}\n"

    prompt += (
        "\nAnswer the question based on your current knowledge state. "
        "If you don't know something, make your best guess. "
        f"{ANSWER_FORMAT_INSTRUCTION}"
    )
    return prompt


def generate_misconception_prompt(misconceptions: Sequence[Misconception]) -> str:
    prompt = (
        "You are a student who has some incorrect beliefs. "
        "You believe the following:\n\n"
    )
    for m in misconceptions:
        prompt += f"- About {m.concept}: {m.incorrect_belief}\n"

    prompt += (
        "\nAnswer the question based on your beliefs, even if they lead you "
        f"to the wrong answer. {ANSWER_FORMAT_INSTRUCTION}"
    )
    return prompt


def build_kli_persona(
    persona_id: str,
    name: str,
    theta: float,
    mastered: Sequence[str],
    confused: Sequence[str],
    unknown: Sequence[str],
    temperature: float = DEFAULT_KLI_TEMPERATURE,
    description: str | None = None,
) -> Persona:
    return Persona(
        id=persona_id,
        name=name,
        theta=theta,
        system_prompt=generate_kli_prompt(mastered, confused, unknown),
        temperature=temperature,
        category=PersonaCategory.KLI,
        description=description,
    )


def build_misconception_persona(
    persona_id: str,
    name: str,
    theta: float,
    misconceptions: Sequence[Misconception],
    temperature: float = DEFAULT_MISCONCEPTION_TEMPERATURE,
    description: str | None = None,
) -> Persona:
    if not misconceptions:
        raise ValueError("misconceptions must not be empty")
    return Persona(
        id=persona_id,
        name=name,
        theta=theta,
        system_prompt=generate_misconception_prompt(misconceptions),
        temperature=temperature,
        category=PersonaCategory.MISCONCEPTION,
        description=description,
    )
