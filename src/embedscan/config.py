"""Project configuration: ``.embedscan.yml`` at the module root.

Example::

    namespace: pkger          # identifier of the embed API package
    include_tests: false      # also scan *_test.go files
    module: github.com/org/app  # override the go.mod module path
    exclude:
      - "internal/gen/**"

Resolution order (later wins): defaults, the config file, the
``EMBEDSCAN_NAMESPACE`` environment variable, CLI flags.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

from embedscan.errors import ConfigError
from embedscan.scanner import DEFAULT_NAMESPACE

log = logging.getLogger(__name__)

CONFIG_NAME = ".embedscan.yml"
NAMESPACE_ENV = "EMBEDSCAN_NAMESPACE"

_KNOWN_KEYS = {"namespace", "include_tests", "module", "exclude"}


@dataclass(frozen=True)
class Config:
    namespace: str = DEFAULT_NAMESPACE
    include_tests: bool = False
    module: str | None = None
    exclude: tuple[str, ...] = field(default_factory=tuple)

    def merged(self, **overrides) -> Config:
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "exclude" in changes:
            changes["exclude"] = tuple(self.exclude) + tuple(changes["exclude"])
        return replace(self, **changes)


def load_config(root: str | Path | None) -> Config:
    """Load ``.embedscan.yml`` from *root*.

    A missing file gives the defaults.  Malformed YAML or values of the
    wrong type raise ConfigError.
    """
    config = Config()
    if root is not None:
        config_path = Path(root) / CONFIG_NAME
        if config_path.is_file():
            config = _from_mapping(_read_yaml(config_path), config_path)
            log.debug("loaded %s", config_path)

    env_namespace = os.environ.get(NAMESPACE_ENV)
    if env_namespace:
        config = replace(config, namespace=env_namespace)
    return config


def _read_yaml(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    return data


def _from_mapping(data: dict, path: Path) -> Config:
    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        log.warning("%s: ignoring unknown keys: %s", path, ", ".join(unknown))

    namespace = data.get("namespace", DEFAULT_NAMESPACE)
    if not isinstance(namespace, str) or not namespace.isidentifier():
        raise ConfigError(f"{path}: 'namespace' must be an identifier")

    include_tests = data.get("include_tests", False)
    if not isinstance(include_tests, bool):
        raise ConfigError(f"{path}: 'include_tests' must be true or false")

    module = data.get("module")
    if module is not None and (not isinstance(module, str) or not module.strip()):
        raise ConfigError(f"{path}: 'module' must be a non-empty string")

    exclude = data.get("exclude") or []
    if isinstance(exclude, str):
        exclude = [exclude]
    if not isinstance(exclude, list) or not all(isinstance(p, str) for p in exclude):
        raise ConfigError(f"{path}: 'exclude' must be a list of glob patterns")

    return Config(
        namespace=namespace,
        include_tests=include_tests,
        module=module.strip() if module else None,
        exclude=tuple(exclude),
    )
