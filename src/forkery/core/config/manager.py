"""
Forkery configuration management (YAML overlays validated by JSON Schema).
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import jsonschema
import yaml

from forkery.core.exceptions import ConfigError
from forkery.core.utils.merge import deep_merge as _deep_merge
from forkery.data import get_data_path

logger = logging.getLogger(__name__)

ENV_PREFIX = "FORKERY_"
# Environment variables that configure path resolution rather than config keys.
_RESERVED_ENV_KEYS = frozenset({"FORKERY_PROJECT_ROOT"})


class ConfigManager:
    """Load, merge, and validate forkery configuration.

    Configuration sources (highest to lowest priority):
    1. Environment variables: FORKERY_<section>__<key>[__<key>...]
    2. Project config: <project-config-dir>/config/*.yaml (alphabetical order)
    3. User config: <user-config-dir>/config/*.yaml (alphabetical order)
    4. Bundled defaults: forkery.data/config/*.yaml (alphabetical order)

    Environment keys must use ``__`` between path segments; values are
    coerced to bool, int, float or JSON where they parse as such.
    """

    ARRAY_APPEND_MARKER = object()

    def __init__(self, repo_root: Optional[Path] = None) -> None:
        from forkery.core.utils.paths import (
            get_project_config_dir,
            get_user_config_dir,
            resolve_project_root,
        )

        self.repo_root = Path(repo_root) if repo_root else resolve_project_root()

        self.core_config_dir = get_data_path("config")
        self.user_config_dir = get_user_config_dir() / "config"
        self.project_config_dir = get_project_config_dir(self.repo_root) / "config"
        self.schemas_dir = get_data_path("schemas")

    def deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge dictionaries. Delegates to shared implementation."""
        return _deep_merge(base, override)

    def load_yaml(self, path: Path) -> Dict[str, Any]:
        from forkery.core.utils.io import read_yaml

        # Configuration must never silently ignore invalid YAML.
        try:
            data = read_yaml(path, default={}, raise_on_error=True)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}", context={"path": str(path)}) from exc
        if not isinstance(data, dict):
            raise ConfigError(
                f"Config file must contain a mapping: {path}",
                context={"path": str(path)},
            )
        return data

    def _load_directory(self, directory: Path, cfg: Dict[str, Any]) -> Dict[str, Any]:
        from forkery.core.utils.io import iter_yaml_files

        for path in iter_yaml_files(directory):
            cfg = self.deep_merge(cfg, self.load_yaml(path))
        return cfg

    # ========== Environment overrides ==========

    def _as_bool(self, v: str) -> Optional[bool]:
        low = v.strip().lower()
        if low in {"true", "false"}:
            return low == "true"
        return None

    def _as_int(self, v: str) -> Optional[int]:
        if re.fullmatch(r"[-+]?\d+", v.strip() or " "):
            return int(v)
        return None

    def _as_float(self, v: str) -> Optional[float]:
        s = v.strip()
        if re.fullmatch(r"[-+]?\d*\.\d+", s) or re.fullmatch(r"[-+]?\d+\.\d*", s):
            return float(s)
        return None

    def _as_json(self, v: str) -> Optional[Any]:
        s = v.strip()
        if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
            try:
                return json.loads(s)
            except ValueError:
                return None
        return None

    def _coerce_type(self, value: str) -> Any:
        for caster in (self._as_bool, self._as_int, self._as_float, self._as_json):
            result = caster(value)
            if result is not None:
                return result
        return value.strip()

    def _parse_env_key(self, raw: str) -> List[Union[str, int, object]]:
        if "__" not in raw:
            return []
        processed: List[Union[str, int, object]] = []
        for seg in raw.split("__"):
            if seg == "":
                raise ConfigError(
                    f"Malformed {ENV_PREFIX}* key: empty segment in '{raw}'.",
                    context={"key": raw},
                )
            if seg.isdigit():
                processed.append(int(seg))
            elif seg.upper() == "APPEND":
                processed.append(self.ARRAY_APPEND_MARKER)
            else:
                processed.append(seg.lower())
        return processed

    def _iter_env_overrides(self) -> Iterator[Tuple[List[Union[str, int, object]], Any]]:
        for key in sorted(os.environ.keys()):
            if not key.startswith(ENV_PREFIX) or key in _RESERVED_ENV_KEYS:
                continue
            path = self._parse_env_key(key[len(ENV_PREFIX):])
            if not path:
                continue
            yield path, self._coerce_type(os.environ[key])

    def _set_nested(self, root: Dict[str, Any], path: List[Union[str, int, object]], value: Any) -> None:
        cur: Any = root
        for i, part in enumerate(path[:-1]):
            nxt = path[i + 1]
            if isinstance(part, int) or part is self.ARRAY_APPEND_MARKER:
                raise ConfigError("Invalid override path: list index/APPEND may only appear at leaf")
            if not isinstance(cur, dict):
                raise ConfigError("Override path traverses a non-mapping value")
            if part not in cur or cur[part] is None:
                cur[part] = [] if (isinstance(nxt, int) or nxt is self.ARRAY_APPEND_MARKER) else {}
            cur = cur[part]

        leaf = path[-1]
        if leaf is self.ARRAY_APPEND_MARKER:
            if not isinstance(cur, list):
                raise ConfigError("APPEND requires a list")
            cur.append(value)
        elif isinstance(leaf, int):
            if not isinstance(cur, list):
                raise ConfigError("Index assignment requires a list")
            while len(cur) <= leaf:
                cur.append(None)
            cur[leaf] = value
        else:
            if not isinstance(cur, dict):
                raise ConfigError("Key assignment requires a mapping")
            cur[leaf] = value

    def apply_env_overrides(self, cfg: Dict[str, Any]) -> None:
        for path, typed_value in self._iter_env_overrides():
            self._set_nested(cfg, path, typed_value)

    # ========== Loading ==========

    def validate_schema(self, config: Dict[str, Any]) -> None:
        """Validate ``config`` against the bundled JSON Schema.

        Raises:
            ConfigError: On the first schema violation.
        """
        schema = yaml.safe_load((self.schemas_dir / "config.schema.yaml").read_text(encoding="utf-8"))
        try:
            jsonschema.validate(instance=config, schema=schema)
        except jsonschema.ValidationError as exc:
            location = ".".join(str(p) for p in exc.absolute_path) or "<root>"
            raise ConfigError(
                f"Invalid configuration at {location}: {exc.message}",
                context={"path": location},
            ) from exc

    def _load_config_uncached(self, validate: bool = True) -> Dict[str, Any]:
        """Load and merge configuration from every layer (UNCACHED)."""
        cfg: Dict[str, Any] = {}
        cfg = self._load_directory(self.core_config_dir, cfg)
        cfg = self._load_directory(self.user_config_dir, cfg)
        cfg = self._load_directory(self.project_config_dir, cfg)
        self.apply_env_overrides(cfg)

        if validate:
            self.validate_schema(cfg)
        logger.debug("Loaded configuration for %s", self.repo_root)
        return cfg

    def load_config(self, validate: bool = True) -> Dict[str, Any]:
        """Load configuration using the centralized cache.

        Returned dict should be treated as immutable.
        """
        from .cache import get_cached_config

        return get_cached_config(repo_root=self.repo_root, validate=validate)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value by dot-notation key.

        Example:
            >>> manager.get('ports.conflict_policy')
            'ask'
            >>> manager.get('nonexistent.key', 'fallback')
            'fallback'
        """
        current: Any = self.load_config()
        for part in key.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current


__all__ = ["ConfigManager"]
