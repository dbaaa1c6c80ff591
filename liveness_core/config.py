"""Settings loading.

``PipelineConfig`` holds the behavioural switches; ``LivenessSettings`` bundles
it with everything needed to build the collaborators (model files, execution
providers, face detector backend, input size). Settings live in YAML.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from .pipeline.contracts import PipelineConfig
from .pipeline.face import FaceDetectorConfig
from .pipeline.preprocess import PreprocessConfig


DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


@dataclass(frozen=True)
class ModelSettings:
    occlusion_model_path: Optional[str] = None
    liveness_model_path: Optional[str] = None
    providers: Tuple[str, ...] = ("CPUExecutionProvider",)


@dataclass(frozen=True)
class LivenessSettings:
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    models: ModelSettings = field(default_factory=ModelSettings)
    face_detector: FaceDetectorConfig = field(default_factory=FaceDetectorConfig)
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)


def _section(raw: Dict[str, Any], name: str, allowed: Tuple[str, ...]) -> Dict[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    unknown = set(section) - set(allowed)
    if unknown:
        raise ValueError(f"Unknown keys in config section '{name}': {sorted(unknown)}")
    return section


def _resolve(path: Optional[str], base_dir: Optional[Path]) -> Optional[str]:
    if path is None:
        return None
    p = Path(path).expanduser()
    if not p.is_absolute() and base_dir is not None:
        p = base_dir / p
    return str(p)


def settings_from_dict(raw: Dict[str, Any], base_dir: Optional[Path] = None) -> LivenessSettings:
    """Build settings from a parsed config mapping.

    Args:
        raw: Parsed YAML mapping
        base_dir: Directory relative model paths are resolved against

    Returns:
        LivenessSettings
    """
    raw = raw or {}
    unknown = set(raw) - {"pipeline", "models", "face_detector", "preprocess"}
    if unknown:
        raise ValueError(f"Unknown config sections: {sorted(unknown)}")

    pipeline = _section(raw, "pipeline", ("debug_logging", "skip_quality_check", "skip_occlusion_check"))
    models = _section(raw, "models", ("occlusion_model_path", "liveness_model_path", "providers"))
    face = _section(raw, "face_detector", ("backend", "min_confidence", "model_selection"))
    pre = _section(raw, "preprocess", ("input_size", "resize_kernel"))

    input_size = int(pre.get("input_size", 224))
    return LivenessSettings(
        pipeline=PipelineConfig(
            debug_logging=bool(pipeline.get("debug_logging", False)),
            skip_quality_check=bool(pipeline.get("skip_quality_check", False)),
            skip_occlusion_check=bool(pipeline.get("skip_occlusion_check", False)),
        ),
        models=ModelSettings(
            occlusion_model_path=_resolve(models.get("occlusion_model_path"), base_dir),
            liveness_model_path=_resolve(models.get("liveness_model_path"), base_dir),
            providers=tuple(models.get("providers") or ("CPUExecutionProvider",)),
        ),
        face_detector=FaceDetectorConfig(
            backend=face.get("backend", "mediapipe"),
            min_confidence=float(face.get("min_confidence", 0.5)),
            model_selection=int(face.get("model_selection", 0)),
        ),
        preprocess=PreprocessConfig(
            resize_hw=(input_size, input_size),
            resize_kernel=pre.get("resize_kernel", "bilinear"),
        ),
    )


def load_settings(config_path: Union[str, Path, None] = None) -> LivenessSettings:
    """Load settings from a YAML file.

    Args:
        config_path: Path to config.yaml. If None, uses the packaged default.

    Returns:
        LivenessSettings
    """
    config_path = DEFAULT_CONFIG_PATH if config_path is None else Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f)

    return settings_from_dict(raw, base_dir=config_path.resolve().parent)


def settings_to_dict(settings: LivenessSettings) -> Dict[str, Any]:
    models = asdict(settings.models)
    models["providers"] = list(models["providers"])
    return {
        "pipeline": asdict(settings.pipeline),
        "models": models,
        "face_detector": asdict(settings.face_detector),
        "preprocess": {
            "input_size": settings.preprocess.resize_hw[0],
            "resize_kernel": settings.preprocess.resize_kernel,
        },
    }


def save_settings(settings: LivenessSettings, output_path: Union[str, Path]) -> None:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        yaml.dump(settings_to_dict(settings), f, default_flow_style=False, sort_keys=False)
