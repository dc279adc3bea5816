from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf

_HERE = Path(__file__).resolve()
_CANDIDATE_CONFIG_PATHS = [parent / "config/config.yaml" for parent in _HERE.parents[:5]]

DEFAULTS: Dict[str, Any] = {
    "server": {"host": "0.0.0.0", "port": 5000},
    "storage": {"upload_dir": "uploads", "output_dir": "output"},
    "limits": {"max_file_size_mb": 50, "max_files": 20},
    "engine": {"binary": "gs", "timeout_seconds": 300, "fail_on_stderr": False},
    "workers": {"max_workers": 4},
    "logging": {"level": "INFO"},
    "cors": {"origins": ["*"]},
}


def _as_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on", "y"}


def _as_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


# Environment variable -> (dotted config key, parser)
ENV_OVERRIDES: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "HOST": ("server.host", str),
    "PORT": ("server.port", int),
    "UPLOAD_DIR": ("storage.upload_dir", str),
    "OUTPUT_DIR": ("storage.output_dir", str),
    "MAX_FILE_SIZE_MB": ("limits.max_file_size_mb", int),
    "MAX_FILES": ("limits.max_files", int),
    "GS_BINARY": ("engine.binary", str),
    "ENGINE_TIMEOUT_SECONDS": ("engine.timeout_seconds", float),
    "ENGINE_FAIL_ON_STDERR": ("engine.fail_on_stderr", _as_bool),
    "MAX_WORKERS": ("workers.max_workers", int),
    "LOG_LEVEL": ("logging.level", str),
    "CORS_ORIGINS": ("cors.origins", _as_list),
}


def locate_config_file(environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    environ = os.environ if environ is None else environ
    explicit = environ.get("PDF_DPI_CONFIG")
    if explicit:
        path = Path(explicit)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found at {path}")
        return path
    return next((path for path in _CANDIDATE_CONFIG_PATHS if path.exists()), None)


def load_settings(config_path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> DictConfig:
    """
    Build the effective settings from defaults, an optional YAML file and the environment.

    Later layers win: defaults < YAML file < environment variables.

    Args:
        config_path: YAML file to merge; located automatically when omitted
        environ: Environment mapping (default: os.environ)

    Returns:
        Merged, struct-locked configuration
    """
    environ = os.environ if environ is None else environ

    base = OmegaConf.create(DEFAULTS)
    OmegaConf.set_struct(base, True)

    layers = [base]
    config_path = config_path or locate_config_file(environ)
    if config_path is not None:
        layers.append(OmegaConf.load(config_path))

    env_layer = OmegaConf.create({})
    for name, (key, parse) in ENV_OVERRIDES.items():
        raw = environ.get(name)
        if raw is None or raw == "":
            continue
        try:
            OmegaConf.update(env_layer, key, parse(raw))
        except ValueError as exc:
            raise ValueError(f"Invalid value for {name}: {raw!r}") from exc
    layers.append(env_layer)

    return DictConfig(OmegaConf.merge(*layers))


@lru_cache(maxsize=1)
def get_settings() -> DictConfig:
    load_dotenv()
    return load_settings()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
