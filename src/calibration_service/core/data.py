"""
Loading utilities for item banks and human response data.
"""

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pandas as pd
from pydantic import ValidationError

from calibration_service.core.constants import OPTION_KEYS
from calibration_service.core.data_models import HumanResponse, Item

logger = logging.getLogger(__name__)

MCQ_TYPE = "multiple-choice"
REQUIRED_HUMAN_COLUMNS = ("item_id", "user_id", "selected")


def _normalize_item(raw: Mapping[str, Any], source: str) -> Item:
    """Map one raw item record onto the Item schema.

    Options may be given either as an ``options`` mapping keyed by letter or
    as flat ``option_a``..``option_d`` fields.
    """
    options = raw.get("options") or {}
    feedback = raw.get("feedback") or {}
    fields: dict[str, Any] = {
        "id": raw["id"],
        "source": source,
        "topic": raw.get("topic"),
        "stem": raw["stem"],
        "correct": raw["correct"],
        "explanation": raw.get("explanation") or feedback.get("explanation"),
        "code": raw.get("code"),
    }
    for key in OPTION_KEYS:
        field = f"option_{key.lower()}"
        fields[field] = options.get(key, raw.get(field, "")) or ""
    return Item(**fields)


def parse_items(
    records: list[Mapping[str, Any]], source: str = "imported"
) -> list[Item]:
    """Normalize raw item records, skipping non-MCQ and invalid entries."""
    items: list[Item] = []
    for raw in records:
        item_type = raw.get("type")
        if item_type and item_type != MCQ_TYPE:
            continue
        try:
            items.append(_normalize_item(raw, source))
        except (KeyError, ValidationError) as e:
            logger.warning(f"Skipped item {raw.get('id')}: {e}")
    return items


def load_items_from_json(path: Path, source: str = "imported") -> list[Item]:
    """Load items from a JSON file.

    The file holds either a list of item records or an object with an
    ``items`` list.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the JSON does not contain an item list.
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with open(path) as f:
        data = json.load(f)

    records = data if isinstance(data, list) else data.get("items")
    if not isinstance(records, list):
        raise ValueError("JSON must be a list of items or have an 'items' list")

    return parse_items(records, source=source)


def load_human_responses_csv(
    path: Path,
    correct_answers: Mapping[str, str] | None = None,
) -> list[HumanResponse]:
    """Load real respondent answers from a CSV file.

    Expected CSV columns:
        - item_id: identifier of the answered item
        - user_id: identifier of the respondent
        - selected: chosen option letter (A-D)
        - is_correct: optional 0/1 column; derived from ``correct_answers``
          when absent
        - latency_ms, source: optional

    Raises:
        ValueError: If required columns are missing or correctness cannot be
            determined.
    """
    df = pd.read_csv(path, dtype={"item_id": str, "user_id": str})

    for column in REQUIRED_HUMAN_COLUMNS:
        if column not in df.columns:
            raise ValueError(f"CSV must have '{column}' column")

    df["selected"] = df["selected"].astype(str).str.strip().str.upper()
    unknown = set(df["selected"]) - set(OPTION_KEYS)
    if unknown:
        raise ValueError(f"Invalid selected values: {sorted(unknown)}")

    if "is_correct" not in df.columns:
        if correct_answers is None:
            raise ValueError(
                "CSV has no 'is_correct' column and no answer key was given"
            )
        missing_items = set(df["item_id"]) - set(correct_answers)
        if missing_items:
            raise ValueError(
                f"No answer key for items: {sorted(missing_items)}"
            )
        df["is_correct"] = df["selected"] == df["item_id"].map(correct_answers)

    responses: list[HumanResponse] = []
    for row in df.to_dict(orient="records"):
        latency = row.get("latency_ms")
        source = row.get("source")
        responses.append(
            HumanResponse(
                item_id=row["item_id"],
                user_id=row["user_id"],
                selected=row["selected"],
                is_correct=bool(row["is_correct"]),
                latency_ms=None if pd.isna(latency) else int(latency),
                source=None if pd.isna(source) else str(source),
            )
        )
    return responses
