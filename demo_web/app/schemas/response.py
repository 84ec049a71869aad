from __future__ import annotations

import json
from typing import Dict, List

from pydantic import BaseModel, ConfigDict


class EchoResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    now: int
    uri: str
    headers: Dict[str, List[str]]
    hostname: str
    git_hash: str
    git_branch: str


class RandomResultResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    now: int
    chance: float
    point: float
    message: str


def to_strict_json(model: BaseModel) -> str:
    """
    Encode ``model`` as strict JSON.

    Raises ValueError for values JSON cannot represent (NaN, +/-Infinity).
    """
    return json.dumps(model.model_dump(mode="python"), allow_nan=False, separators=(",", ":"))
