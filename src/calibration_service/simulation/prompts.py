from calibration_service.core.constants import OPTION_KEYS
from calibration_service.core.data_models import Item


def format_item(item: Item) -> str:
    """Render an item as the user prompt: stem, optional code block, options."""
    prompt = item.stem

    if item.code:
        prompt += f"\n\n```\n{item.code}\n```"

    prompt += "\n"
    for key in OPTION_KEYS:
        prompt += f"\n{key}) {item.options[key]}"

    return prompt
