import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_LINE_WIDTH = 2
DEFAULT_RADIUS = 4

# Runtime whose backends the configurator manages; "<runtime>-<backend>" specs
# for any other runtime only update flags.
MANAGED_RUNTIME = "tflite"
DEFAULT_BACKEND = f"{MANAGED_RUNTIME}-cpu"
# GPU-accelerated backends that may legitimately be missing on this machine.
OPTIONAL_BACKENDS = {"gpu"}

BACKEND_CHOICES = [f"{MANAGED_RUNTIME}-cpu", f"{MANAGED_RUNTIME}-gpu"]

TUNABLE_FLAG_VALUE_RANGE_MAP: Dict[str, List[Any]] = {
    "TFLITE_NUM_THREADS": [-1, 1, 2, 4, 8],
    "TFLITE_USE_XNNPACK": [True, False],
    "TFLITE_PRESERVE_ALL_TENSORS": [True, False],
    "CHECK_COMPUTATION_FOR_ERRORS": [True, False],
}

MOVENET_MODEL_PATHS = {
    "lightning": "models/movenet_single_pose_lightning.tflite",
    "thunder": "models/movenet_single_pose_thunder.tflite",
}


@dataclass
class ModelConfig:
    score_threshold: Optional[float] = 0.3
    enable_tracking: bool = False
    model_type: str = "lightning"


@dataclass
class RuntimeConfig:
    """
    Mutable state shared by the configurator and the renderer for one detection session.

    `last_backend` is the last backend spec that was activated successfully; it is
    what the configurator falls back to when an optional backend is missing.
    """

    backend: str = DEFAULT_BACKEND
    model: str = "movenet"
    model_config: ModelConfig = field(default_factory=ModelConfig)
    # raw overrides, validated by the configurator when applied
    flags: Any = field(default_factory=dict)
    last_backend: Optional[str] = None


def _deep_get(d: Dict[str, Any], keys: List[str], default: Any = None) -> Any:
    cur: Any = d
    for k in keys:
        if not isinstance(cur, dict):
            return default
        cur = cur.get(k)
    return cur if cur is not None else default


def _as_bool(v: Any, default: bool) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        return v.strip().lower() in ("1", "true", "yes", "on")
    return bool(default)


def _as_optional_float(v: Any, default: Optional[float]) -> Optional[float]:
    if v is None:
        return default
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


def _as_str(v: Any, default: str = "") -> str:
    return str(v) if v is not None else str(default)


def load_runtime_config(path: Optional[str] = None) -> RuntimeConfig:
    """
    Read a RuntimeConfig from a JSON file.

    A missing or malformed file yields the defaults. Flag overrides are copied
    verbatim; they are validated when the configurator applies them.
    """
    if not path:
        return RuntimeConfig()
    p = Path(path).expanduser().resolve()
    if not p.exists():
        logger.info(f"No config at {p}, using defaults")
        return RuntimeConfig()
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring malformed config {p}: {e}")
        return RuntimeConfig()

    if not isinstance(raw, dict):
        return RuntimeConfig()

    defaults = ModelConfig()
    flags = raw.get("flags")
    if isinstance(flags, dict):
        flags = dict(flags)
    elif flags is None and "flags" not in raw:
        flags = {}

    # An explicit null threshold means draw everything, a missing one keeps the default.
    model_raw = raw.get("model_config")
    if isinstance(model_raw, dict) and "score_threshold" in model_raw and model_raw["score_threshold"] is None:
        score_threshold = None
    else:
        score_threshold = _as_optional_float(
            _deep_get(raw, ["model_config", "score_threshold"]), defaults.score_threshold
        )

    return RuntimeConfig(
        backend=_as_str(raw.get("backend"), DEFAULT_BACKEND).strip().lower() or DEFAULT_BACKEND,
        model=_as_str(raw.get("model"), "movenet").strip().lower() or "movenet",
        model_config=ModelConfig(
            score_threshold=score_threshold,
            enable_tracking=_as_bool(
                _deep_get(raw, ["model_config", "enable_tracking"], False), False
            ),
            model_type=_as_str(
                _deep_get(raw, ["model_config", "model_type"], defaults.model_type), defaults.model_type
            ),
        ),
        flags=flags,
    )
