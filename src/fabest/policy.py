from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import MutableMapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_POLICY_PATH = Path("references") / "health_policy.json"


def apply_policy_defaults(path: Path, env: Optional[MutableMapping[str, str]] = None) -> list[str]:
    """Set default environment variables from a policy JSON if not already set.

    Only missing or blank keys are filled.  Returns the keys that were applied.
    """
    target = os.environ if env is None else env
    if not path.exists():
        return []
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring malformed policy file %s: %s", path, exc)
        return []
    if not isinstance(payload, dict):
        return []
    applied: list[str] = []
    env_defaults = payload.get("env_defaults") or {}
    for key, value in env_defaults.items():
        if str(target.get(key, "")).strip() == "":
            target[key] = str(value)
            applied.append(key)
    return applied
