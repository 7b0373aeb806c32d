"""Region and sub-region catalogue shipped with the clubs service.

The list lives in ``data/regions.json`` and is read once per process.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Optional

REGIONS_FILE = Path(__file__).parent / "data" / "regions.json"


@lru_cache
def load_regions() -> tuple[dict, ...]:
    with open(REGIONS_FILE, "r", encoding="utf-8") as f:
        data = json.load(f)
    return tuple(data)


def is_known_region(region: str, sub_region: Optional[str] = None) -> bool:
    """True if ``region`` exists and, when given, ``sub_region`` belongs to it."""
    for entry in load_regions():
        if entry["region"] == region:
            return sub_region is None or sub_region in entry["sub_regions"]
    return False
