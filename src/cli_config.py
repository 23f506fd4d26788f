"""CLI configuration loading and runtime overrides.

Precedence, lowest to highest: built-in defaults, YAML config file, CLI
flags. Bad config is logged and skipped so the CLI keeps working on defaults.
"""

from __future__ import annotations

import logging

import yaml

from constants import Constants, _load_yaml_config, apply_config

logger = logging.getLogger(__name__)


def load_config(args) -> None:
    """Load the YAML config named by ``--config`` (or the default locations)."""
    path = getattr(args, "CONFIG", None)
    try:
        cfg = _load_yaml_config(path)
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not read config %s: %s", path or "(default locations)", exc)
        return
    try:
        apply_config(cfg)
    except (TypeError, ValueError) as exc:
        logger.warning("Ignoring invalid config value: %s", exc)


def apply_cli_overrides(args) -> None:
    """Apply CLI tunables on top of the loaded config."""
    workers = getattr(args, "WORKERS", None)
    if workers is not None:
        if workers < 1:
            logger.warning("Ignoring --workers %s; must be at least 1", workers)
        else:
            Constants.RESOLVE_MAX_WORKERS = int(workers)
    versions = getattr(args, "VERSIONS", None)
    if versions is not None:
        Constants.INTELLIGENCE_DEFAULT_VERSIONS = max(0, int(versions))
