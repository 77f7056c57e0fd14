"""Helpers for loading uploader configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from loguru import logger

from .config_validator import ConfigValidator, apply_defaults, resolve_env_defaults
from .errors import ConfigError
from .models import GitHubConfig

DEFAULT_CONFIG_PATH = Path("config") / "github.yaml"


def _expand_env(value: Any) -> Any:
	"""Recursively expand environment variables in strings."""

	if isinstance(value, str):
		return os.path.expandvars(value)
	if isinstance(value, list):
		return [_expand_env(item) for item in value]
	if isinstance(value, dict):
		return {key: _expand_env(val) for key, val in value.items()}
	return value


def _read_yaml(config_path: Path) -> Dict[str, Any]:
	try:
		with config_path.open("r", encoding="utf-8") as handle:
			data = yaml.safe_load(handle) or {}
	except yaml.YAMLError as exc:
		raise ConfigError(f"Config file {config_path} is not valid YAML: {exc}") from exc

	if not isinstance(data, dict):
		raise ConfigError(f"Config file {config_path} must contain a mapping")
	if not isinstance(data.get("github", {}) or {}, dict):
		raise ConfigError(f"Config file {config_path}: 'github' section must be a mapping")
	return data


def prepare_config(data: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
	"""
	Apply defaults and expand environment variables.

	Returns:
		``(defaulted, expanded)``: the config with ``${VAR}`` placeholders for
		missing keys, and the same config after expansion
	"""

	defaulted = apply_defaults(data)
	expanded = resolve_env_defaults(_expand_env(defaulted))
	return defaulted, expanded


def load_github_config(
	path: Optional[str | Path] = None,
	repository: Optional[str] = None,
	branch: Optional[str] = None,
	validate: bool = True,
) -> GitHubConfig:
	"""
	Build the :class:`GitHubConfig` for this run.

	Args:
		path: Path to a YAML config file. ``None`` tries ``config/github.yaml``
			and falls back to environment variables only.
		repository: ``owner/repo`` override (takes precedence over file and env)
		branch: Branch override
		validate: Whether to perform configuration validation (default: True)

	Returns:
		GitHubConfig instance

	Raises:
		ConfigError: If an explicit config file is missing, or validation fails
	"""

	if path is not None:
		config_path = Path(path)
		if not config_path.exists():
			raise ConfigError(f"Config file not found: {config_path}")
		data = _read_yaml(config_path)
		logger.debug(f"Loaded config from {config_path}")
	elif DEFAULT_CONFIG_PATH.exists():
		data = _read_yaml(DEFAULT_CONFIG_PATH)
		logger.debug(f"Loaded config from {DEFAULT_CONFIG_PATH}")
	else:
		data = {}

	defaulted, expanded = prepare_config(data)

	section = expanded["github"]
	if repository:
		section["repository"] = repository
	if branch:
		section["branch"] = branch

	if validate:
		result = ConfigValidator(config_dict=defaulted, expanded_dict=expanded).validate()
		result.log_summary()
		if not result.is_valid:
			raise ConfigError(result.error_message())

	return GitHubConfig.from_dict(expanded)
