# helmet_overlay/helmet_engine/common/config.py
import copy
import logging
import yaml
from typing import Optional
from .enums import LogLevel

DEFAULT_CONFIG = {
    'camera': {
        'source': 0,
        'sources': [0],
        'resolution': [1280, 720],
        'target_fps': 30,
        'buffer_size': 5,
        'mirror': True,
    },
    'tracking': {
        'model_asset_path': 'models/face_landmarker.task',
        'min_face_detection_confidence': 0.5,
        'min_face_presence_confidence': 0.5,
        'min_tracking_confidence': 0.5,
    },
    'pose': {
        'eye_weight': 0.4,
        'height_weight': 0.6,
        'gain': 1.9,
        'center_weights': [1.0, 1.0, 1.0],
        'min_scale': 40.0,
        'max_scale': None,
        'min_eye_distance': 1.0,
    },
    'smoothing': {
        'factor': 0.25,
        'max_rotation_step': None,
    },
    'animation': {
        'duration_ms': 350.0,
        'scrub_duration_ms': 120.0,
        'scrub_step': 0.1,
        'epsilon': 1e-3,
        'initial_progress': 0.0,
    },
    'style': {},
    'visualization': {
        'draw_hud': True,
        'draw_landmarks': False,
        'adaptive_lod': True,
        'lod_threshold_fps': 20,
        'curve_samples': 12,
    },
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    },
}

def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged

def load_config(path: Optional[str] = None) -> dict:
    """Loads the YAML configuration at ``path`` over the built-in defaults.

    Raises FileNotFoundError or yaml.YAMLError; an empty file yields the defaults.
    """
    if path is None:
        return copy.deepcopy(DEFAULT_CONFIG)
    with open(path, 'r') as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise yaml.YAMLError(f"Top level of '{path}' must be a mapping")
    return _merge(DEFAULT_CONFIG, loaded)

def configure_logging(config: dict) -> None:
    """Configures the root logger from the ``logging`` config section."""
    level = LogLevel(str(config.get('level', LogLevel.INFO.value)).upper())
    logging.basicConfig(
        level=getattr(logging, level.value),
        format=config.get('format', DEFAULT_CONFIG['logging']['format']),
    )
