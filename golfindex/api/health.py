import platform
import time
from typing import Any, Dict

from golfindex.config import get_settings
from golfindex.metrics import BUILD_VERSION, GIT_SHA


async def health() -> Dict[str, Any]:
    settings = get_settings()
    return {
        "status": "ok",
        "version": BUILD_VERSION,
        "git": GIT_SHA,
        "ts": time.time(),
        "handicap": {
            "unknown_policy": settings.unknown_handicap_policy.value,
            "recompute_strategy": settings.recompute_strategy.value,
            "apply_exceptional": settings.apply_exceptional_scores,
        },
        "runtime": {
            "python": platform.python_version(),
        },
    }
