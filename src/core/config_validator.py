"""Configuration validation and environment variable checking."""

from __future__ import annotations

import copy
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List
from urllib.parse import urlparse

from loguru import logger

from .errors import ConfigError
from .models import DEFAULT_API_BASE_URL, DEFAULT_BRANCH

_ENV_PATTERN = re.compile(r'\$\{([A-Z_][A-Z0-9_]*)\}')


@dataclass
class ValidationError:
	"""Represents a configuration validation error."""

	field_path: str
	message: str
	severity: str  # 'error' or 'warning'

	def __str__(self) -> str:
		prefix = "ERROR" if self.severity == "error" else "WARNING"
		return f"{prefix}: {self.field_path} - {self.message}"


@dataclass
class ValidationResult:
	"""Result of configuration validation."""

	errors: List[ValidationError]
	warnings: List[ValidationError]

	@property
	def is_valid(self) -> bool:
		"""Returns True if there are no errors (warnings are acceptable)."""
		return len(self.errors) == 0

	def log_summary(self) -> None:
		"""Report every error and warning through the logger."""
		for error in self.errors:
			logger.error(f"Config {error.field_path}: {error.message}")
		for warning in self.warnings:
			logger.warning(f"Config {warning.field_path}: {warning.message}")

	def error_message(self) -> str:
		return "; ".join(f"{error.field_path}: {error.message}" for error in self.errors)


class ConfigValidator:
	"""Validates uploader configuration after environment variable expansion."""

	# Environment variables with a usable fallback when unset
	DEFAULTS = {
		"GH_BRANCH": DEFAULT_BRANCH,
		"GH_API_URL": DEFAULT_API_BASE_URL,
	}

	def __init__(self, config_dict: Dict[str, Any], expanded_dict: Dict[str, Any]):
		"""
		Initialize validator with both original and expanded config.

		Args:
			config_dict: Original config dict before environment variable expansion
			expanded_dict: Config dict after environment variable expansion
		"""
		self.config_dict = config_dict
		self.expanded_dict = expanded_dict
		self.errors: List[ValidationError] = []
		self.warnings: List[ValidationError] = []

	def validate(self) -> ValidationResult:
		"""
		Run all validation checks.

		Returns:
			ValidationResult containing errors and warnings
		"""
		self.errors = []
		self.warnings = []

		self._check_env_vars()
		self._check_token()
		self._check_repository()
		self._check_branch()
		self._check_api_base_url()
		self._check_timeout()
		self._check_unexpanded_vars()

		return ValidationResult(errors=self.errors, warnings=self.warnings)

	@property
	def _github(self) -> Dict[str, Any]:
		return self.expanded_dict.get("github", {}) or {}

	def _error(self, field_path: str, message: str) -> None:
		self.errors.append(ValidationError(field_path=field_path, message=message, severity="error"))

	def _warning(self, field_path: str, message: str) -> None:
		self.warnings.append(ValidationError(field_path=field_path, message=message, severity="warning"))

	def _check_env_vars(self) -> None:
		"""Warn about unset variables that fall back to a default."""
		for var_name, field_path in self._find_env_vars(self.config_dict):
			if var_name not in os.environ and var_name in self.DEFAULTS:
				self._warning(
					field_path,
					f"Environment variable ${{{var_name}}} not set, using default: {self.DEFAULTS[var_name]}",
				)

	def _check_token(self) -> None:
		token = self._github.get("token")

		if not token or not isinstance(token, str) or token.startswith("${"):
			self._error(
				"github.token",
				"GH_TOKEN environment variable is required. Please set it with: export GH_TOKEN='your-token'",
			)
		elif token.strip() == "":
			self._error("github.token", "GitHub token is empty.")

	def _check_repository(self) -> None:
		repository = self._github.get("repository")

		if not repository or not isinstance(repository, str) or repository.startswith("${"):
			self._error(
				"github.repository",
				"GitHub repository is required (format: owner/repo). Set GH_REPOSITORY or pass --repo.",
			)
			return

		parts = repository.strip().split("/")
		if len(parts) != 2 or not all(parts):
			self._error("github.repository", f"Repository must be in format 'owner/repo', got: '{repository}'")

	def _check_branch(self) -> None:
		branch = self._github.get("branch")

		if not branch or not isinstance(branch, str) or not branch.strip():
			self._error("github.branch", "Branch name must not be empty.")
			return
		if branch.startswith("refs/") or ".." in branch or " " in branch:
			self._error("github.branch", f"Invalid branch name: '{branch}'")

	def _check_api_base_url(self) -> None:
		url = self._github.get("api_base_url")
		if not url:
			return

		parsed = urlparse(str(url))
		if parsed.scheme not in ("http", "https") or not parsed.netloc:
			self._error("github.api_base_url", f"Not a valid http(s) URL: '{url}'")
		elif parsed.scheme == "http":
			self._warning("github.api_base_url", "API URL is not HTTPS; the token will be sent in clear text.")

	def _check_timeout(self) -> None:
		timeout = self._github.get("timeout")
		if timeout in (None, ""):
			return

		try:
			seconds = float(timeout)
		except (TypeError, ValueError):
			self._error("github.timeout", f"Timeout must be a number of seconds, got: '{timeout}'")
			return
		if isinstance(timeout, bool) or not seconds > 0:
			self._error("github.timeout", f"Timeout must be a positive number of seconds, got: '{timeout}'")

	def _check_unexpanded_vars(self) -> None:
		"""Check for any unexpanded ${VAR} patterns that might cause issues."""
		for var_name, field_path, value in self._find_unexpanded_vars(self.expanded_dict):
			# token and repository already reported as errors
			if field_path in ("github.token", "github.repository"):
				continue
			self._warning(
				field_path,
				f"Value contains unexpanded variable: {value}. Environment variable ${{{var_name}}} may not be set.",
			)

	def _find_env_vars(self, obj: Any, path: str = "") -> List[tuple[str, str]]:
		"""
		Recursively find all ${VAR} patterns in the config.

		Returns:
			List of (var_name, field_path) tuples
		"""
		return [(var_name, field_path) for var_name, field_path, _ in self._walk(obj, path)]

	def _find_unexpanded_vars(self, obj: Any, path: str = "") -> List[tuple[str, str, str]]:
		"""
		Find unexpanded ${VAR} patterns in the expanded config.

		Returns:
			List of (var_name, field_path, value) tuples
		"""
		return self._walk(obj, path)

	def _walk(self, obj: Any, path: str) -> List[tuple[str, str, str]]:
		results = []

		if isinstance(obj, str):
			for var_name in _ENV_PATTERN.findall(obj):
				results.append((var_name, path, obj))

		elif isinstance(obj, dict):
			for key, value in obj.items():
				new_path = f"{path}.{key}" if path else key
				results.extend(self._walk(value, new_path))

		elif isinstance(obj, list):
			for i, item in enumerate(obj):
				results.extend(self._walk(item, f"{path}[{i}]"))

		return results


def apply_defaults(config_dict: Dict[str, Any]) -> Dict[str, Any]:
	"""
	Fill in missing ``github`` keys before environment variable expansion.

	Missing keys become ``${VAR}`` placeholders, so the validator sees which
	values come from the environment.

	Args:
		config_dict: Configuration dictionary

	Returns:
		New config dictionary with defaults applied

	Raises:
		ConfigError: If the ``github`` section is not a mapping
	"""
	data = copy.deepcopy(config_dict)
	section = data.get("github")
	if section is None:
		section = {}
	elif not isinstance(section, dict):
		raise ConfigError(f"'github' section must be a mapping, got {type(section).__name__}")
	data["github"] = section

	section.setdefault("token", "${GH_TOKEN}")
	section.setdefault("repository", "${GH_REPOSITORY}")
	section.setdefault("branch", "${GH_BRANCH}")
	section.setdefault("api_base_url", "${GH_API_URL}")

	# Actions runners expose the token as GITHUB_TOKEN
	if section["token"] == "${GH_TOKEN}" and "GH_TOKEN" not in os.environ and "GITHUB_TOKEN" in os.environ:
		section["token"] = "${GITHUB_TOKEN}"
		logger.debug("GH_TOKEN not set, using GITHUB_TOKEN")

	return data


def resolve_env_defaults(expanded_dict: Dict[str, Any]) -> Dict[str, Any]:
	"""Replace placeholders of unset variables that have a default value."""
	section = expanded_dict.get("github") or {}
	for key, var_name in (("branch", "GH_BRANCH"), ("api_base_url", "GH_API_URL")):
		if section.get(key) == f"${{{var_name}}}":
			section[key] = ConfigValidator.DEFAULTS[var_name]
	return expanded_dict
