"""Configuration loading for sysmlcheck (.sysmlcheck.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".sysmlcheck.yml"
DEFAULT_MODEL_DIR = ".sysml"
DEFAULT_MIN_MANIFEST_COVERAGE = 95
DEFAULT_SOURCE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".json")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class CoverageConfig:
    """Manifest coverage gate and source discovery settings."""

    min_manifest_coverage: int = DEFAULT_MIN_MANIFEST_COVERAGE
    source_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_SOURCE_EXTENSIONS))
    exclude_paths: List[str] = field(default_factory=list)


@dataclass
class GrammarConfig:
    """External grammar validator invocation."""

    enabled: bool = True
    command: str = "sysml2"
    include_paths: List[str] = field(default_factory=list)
    library_path: Optional[str] = None


@dataclass
class DiagramConfig:
    """Diagram pass selection and output location."""

    enabled: Optional[List[str]] = None
    output_dir: Optional[Path] = None


@dataclass
class SysmlCheckConfig:
    """Represents the settings defined in .sysmlcheck.yml."""

    root: Path
    model_dir: str = DEFAULT_MODEL_DIR
    coverage: CoverageConfig = field(default_factory=CoverageConfig)
    grammar: GrammarConfig = field(default_factory=GrammarConfig)
    diagrams: DiagramConfig = field(default_factory=DiagramConfig)

    @property
    def model_root(self) -> Path:
        return self.root / self.model_dir

    @property
    def diagram_output_dir(self) -> Path:
        if self.diagrams.output_dir is not None:
            return self.diagrams.output_dir
        return self.model_root / "_diagrams"


def load_config(config_path: Path) -> SysmlCheckConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return SysmlCheckConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = SysmlCheckConfig(root=root)

    model_dir = _as_str(data.get("model_dir"))
    if model_dir:
        config.model_dir = model_dir.strip().rstrip("/") or DEFAULT_MODEL_DIR

    coverage_data = _as_dict(data.get("coverage"))
    if coverage_data:
        threshold = _as_int(coverage_data.get("min_manifest_coverage"))
        if threshold is not None:
            config.coverage.min_manifest_coverage = max(0, min(100, threshold))
        extensions = _as_str_list(coverage_data.get("source_extensions"))
        if extensions:
            config.coverage.source_extensions = [_dotted(ext) for ext in extensions]
        config.coverage.exclude_paths = _as_str_list(coverage_data.get("exclude_paths"))

    grammar_data = _as_dict(data.get("grammar"))
    if grammar_data:
        enabled = _as_bool(grammar_data.get("enabled"))
        if enabled is not None:
            config.grammar.enabled = enabled
        command = _as_str(grammar_data.get("command"))
        if command:
            config.grammar.command = command
        config.grammar.include_paths = _as_str_list(grammar_data.get("include_paths"))
        config.grammar.library_path = _as_str(grammar_data.get("library_path"))

    diagram_data = _as_dict(data.get("diagrams"))
    if diagram_data:
        if "enabled" in diagram_data:
            config.diagrams.enabled = _as_str_list(diagram_data.get("enabled"))
        output_dir = _as_str(diagram_data.get("output_dir"))
        if output_dir:
            config.diagrams.output_dir = root / output_dir

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _dotted(extension: str) -> str:
    extension = extension.strip()
    return extension if extension.startswith(".") else f".{extension}"


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "CoverageConfig",
    "DiagramConfig",
    "GrammarConfig",
    "SysmlCheckConfig",
    "load_config",
]
