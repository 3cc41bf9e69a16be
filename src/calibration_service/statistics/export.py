"""
JSON and tabular export of item statistics.
"""

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from calibration_service.statistics.data_models import ItemStatistics

QUALITY_DECIMALS = 2
RATE_DECIMALS = 3
FLAG_SEPARATOR = ";"

CSV_COLUMNS = [
    "item_id",
    "n",
    "difficulty",
    "discrimination",
    "rate_A",
    "rate_B",
    "rate_C",
    "rate_D",
    "functional_distractors",
    "nonfunctional_distractors",
    "response_variance",
    "flags",
    "quality",
]


def statistics_to_records(
    stats: Sequence[ItemStatistics],
) -> list[dict[str, Any]]:
    """Plain JSON-ready dicts; quality scores rounded to 2 decimals."""
    records: list[dict[str, Any]] = []
    for s in stats:
        record = s.model_dump(mode="json")
        record["quality_score"] = round(s.quality_score, QUALITY_DECIMALS)
        records.append(record)
    return records


def statistics_to_json(stats: Sequence[ItemStatistics], indent: int = 2) -> str:
    return json.dumps(statistics_to_records(stats), indent=indent)


def statistics_to_dataframe(stats: Sequence[ItemStatistics]) -> pd.DataFrame:
    """One row per item with rounded, display-ready values."""
    rows = [
        {
            "item_id": s.item_id,
            "n": s.n_responses,
            "difficulty": round(s.difficulty, RATE_DECIMALS),
            "discrimination": round(s.discrimination, RATE_DECIMALS),
            "rate_A": round(s.option_rates.A, RATE_DECIMALS),
            "rate_B": round(s.option_rates.B, RATE_DECIMALS),
            "rate_C": round(s.option_rates.C, RATE_DECIMALS),
            "rate_D": round(s.option_rates.D, RATE_DECIMALS),
            "functional_distractors": s.functional_distractors,
            "nonfunctional_distractors": s.nonfunctional_distractors,
            "response_variance": round(s.response_variance, RATE_DECIMALS),
            "flags": FLAG_SEPARATOR.join(s.flags),
            "quality": round(s.quality_score, QUALITY_DECIMALS),
        }
        for s in stats
    ]
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def write_statistics_csv(stats: Sequence[ItemStatistics], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    statistics_to_dataframe(stats).to_csv(path, index=False)


def write_statistics_json(stats: Sequence[ItemStatistics], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        f.write(statistics_to_json(stats))
