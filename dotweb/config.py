from pathlib import Path
from typing import Dict, Set

import yaml

from .errors import ConfigError


class BuildConfig:
    """Resolved build/watch configuration."""

    def __init__(self, headers: Set[Path], watch: Set[Path], write_pairs: Dict[Path, Path]):
        self.headers = headers          # component libraries compiled before each source, never written
        self.watch = watch              # extra files that trigger a rebuild
        self.write_pairs = write_pairs  # {src: dst}

    @property
    def watched_files(self) -> Set[Path]:
        return set(self.write_pairs) | self.headers | self.watch


def _glob_all(base_path: Path, patterns) -> Set[Path]:
    if not isinstance(patterns, list):
        raise ConfigError(f"Expected a list of glob patterns, got {patterns!r}")
    return {path for pattern in patterns for path in sorted(base_path.glob(pattern))}


def load_config(config_path, base_path: Path = Path('.')) -> BuildConfig:
    """
    Loads a YAML configuration such as:

        headers: ["components/*.web"]
        watch: ["assets/*.css"]
        write:
          - src: pages/index.web
            dst: public/index.html
    """
    try:
        with open(config_path, 'r') as f:
            cfg = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read configuration {config_path}: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigError("Configuration must be a mapping")

    headers = _glob_all(base_path, cfg['headers']) if 'headers' in cfg else set()
    watch = _glob_all(base_path, cfg['watch']) if 'watch' in cfg else set()

    if not cfg.get('write'):
        raise ConfigError("Configuration needs at least one 'write' entry with 'src' and 'dst'")
    write_pairs: Dict[Path, Path] = {}
    for to_write in cfg['write']:
        if not isinstance(to_write, dict) or 'src' not in to_write or 'dst' not in to_write:
            raise ConfigError(f"Invalid 'write' entry: {to_write!r}")
        write_pairs[base_path / to_write['src']] = base_path / to_write['dst']

    return BuildConfig(headers, watch, write_pairs)
