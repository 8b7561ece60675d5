"""Configuration management for the orchestrator."""

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import ValidationError

from orchestrator.models import Config, RunContext
from orchestrator.utils.logger import get_logger
from orchestrator.utils.shell import get_git_root

logger = get_logger(__name__)

ENV_PREFIX = "ORCHESTRATOR_"

# Well-known CI variables mapped onto configuration keys
CREDENTIAL_ENV_VARS = {
    "GH_TOKEN": ("github", "token"),
    "GITHUB_TOKEN": ("github", "token"),
    "ANTHROPIC_API_KEY": ("ai", "api_key"),
}


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigManager:
    """Configuration manager with hierarchical loading and environment variable support."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """Initialize configuration manager.

        Args:
            environ: Environment mapping (defaults to ``os.environ``)
        """
        self._environ = environ if environ is not None else os.environ
        self._config: Optional[Config] = None
        self._user_config_path = Path.home() / ".orchestrator" / "config.yaml"
        self._project_config_path: Optional[Path] = None
        self._find_project_config()

    def _find_project_config(self) -> None:
        """Find project configuration file in the git root or current directory."""
        candidates = []
        git_root = get_git_root()
        if git_root:
            candidates.append(git_root / ".orchestrator" / "config.yaml")
        candidates.append(Path.cwd() / ".orchestrator" / "config.yaml")

        for candidate in candidates:
            if candidate.exists() and candidate != self._user_config_path:
                self._project_config_path = candidate
                logger.debug(f"Found project config: {candidate}")
                return

    def _expand_env_vars(self, data: Any) -> Any:
        """Recursively expand ``${VAR}`` and ``${VAR:-default}`` in configuration values."""
        if isinstance(data, str):
            def replace_env_var(match):
                var_expr = match.group(1)
                if ":-" in var_expr:
                    var_name, default_value = var_expr.split(":-", 1)
                    return self._environ.get(var_name, default_value)
                var_value = self._environ.get(var_expr)
                if var_value is None:
                    logger.warning(f"Environment variable '{var_expr}' not found")
                    return match.group(0)
                return var_value

            return re.sub(r"\$\{([^}]+)\}", replace_env_var, data)
        if isinstance(data, dict):
            return {key: self._expand_env_vars(value) for key, value in data.items()}
        if isinstance(data, list):
            return [self._expand_env_vars(item) for item in data]
        return data

    def _load_yaml_file(self, path: Path) -> Dict[str, Any]:
        """Load and parse YAML configuration file.

        Raises:
            ConfigError: If file cannot be loaded or parsed
        """
        if not path.exists():
            return {}

        logger.debug(f"Loading config file: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML file {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to load config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        return self._expand_env_vars(data)

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides.

        Credentials come from the usual CI variables (``GITHUB_TOKEN``,
        ``GH_TOKEN``, ``ANTHROPIC_API_KEY``). Any other key can be set with
        ``ORCHESTRATOR_<SECTION>__<KEY>``, e.g. ``ORCHESTRATOR_AI__MODEL``.
        Prefixed variables win over the well-known ones.
        """
        for env_name, (section, key) in CREDENTIAL_ENV_VARS.items():
            value = self._environ.get(env_name)
            if value and not config_data.get(section, {}).get(key):
                config_data.setdefault(section, {})[key] = value

        for env_name, value in self._environ.items():
            if not env_name.startswith(ENV_PREFIX):
                continue

            key_parts = env_name[len(ENV_PREFIX):].lower().split("__")
            current = config_data
            for part in key_parts[:-1]:
                current = current.setdefault(part, {})

            # Kept as text; the config models coerce it to the field type
            current[key_parts[-1]] = value
            logger.debug(f"Applied env override: {'.'.join(key_parts)}")

        return config_data

    def load_config(self) -> Config:
        """Load configuration from all sources.

        Loading order (later sources override earlier):
        1. Defaults from the Config model
        2. User configuration (~/.orchestrator/config.yaml)
        3. Project configuration (<project>/.orchestrator/config.yaml)
        4. Environment variables

        Raises:
            ConfigError: If configuration is invalid
        """
        config_data: Dict[str, Any] = {}
        config_data = self._merge_configs(config_data, self._load_yaml_file(self._user_config_path))

        if self._project_config_path:
            project_config = self._load_yaml_file(self._project_config_path)
            config_data = self._merge_configs(config_data, project_config)

        config_data = self._apply_env_overrides(config_data)

        try:
            self._config = Config.model_validate(config_data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        logger.debug("Configuration loaded successfully")
        return self._config

    def get_config(self) -> Config:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def create_default_config(self, user_level: bool = True) -> Path:
        """Create default configuration file.

        Args:
            user_level: If True, create user config; if False, create project config

        Returns:
            Path to the configuration file

        Raises:
            ConfigError: If configuration cannot be created
        """
        if user_level:
            config_path = self._user_config_path
        else:
            git_root = get_git_root() or Path.cwd()
            config_path = git_root / ".orchestrator" / "config.yaml"

        if config_path.exists():
            logger.warning(f"Configuration file already exists: {config_path}")
            return config_path

        config_data = Config().model_dump(mode="json")
        # Secrets belong in the environment, not in files
        config_data["github"].pop("token", None)
        config_data["ai"].pop("api_key", None)

        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, "w", encoding="utf-8") as f:
                f.write("# Service orchestrator configuration\n\n")
                yaml.safe_dump(config_data, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise ConfigError(f"Failed to create configuration file {config_path}: {e}") from e

        if not user_level:
            self._project_config_path = config_path

        logger.info(f"Default configuration created: {config_path}")
        self._config = None
        return config_path

    def list_config_files(self) -> Dict[str, Optional[Path]]:
        """List configuration file paths that are in effect."""
        return {
            "user": self._user_config_path if self._user_config_path.exists() else None,
            "project": self._project_config_path,
        }


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    text = str(value).strip().lstrip("#")
    return int(text) if text.isdigit() else None


def load_run_context(environ: Optional[Mapping[str, str]] = None) -> RunContext:
    """Build the per-run context from GitHub Actions style environment variables.

    The pull request number is read from the event payload file named by
    ``GITHUB_EVENT_PATH`` when the run was triggered by a pull request event.

    Raises:
        ConfigError: If the event payload cannot be read
    """
    env = environ if environ is not None else os.environ
    event_name = env.get("GITHUB_EVENT_NAME")

    pr_number = _optional_int(env.get("PR_NUMBER"))
    event_path = env.get("GITHUB_EVENT_PATH")
    if pr_number is None and event_name in ("pull_request", "pull_request_target") and event_path:
        try:
            with open(event_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to read event payload {event_path}: {e}") from e
        pr_number = _optional_int((payload.get("pull_request") or {}).get("number"))

    return RunContext(
        issue_body=env.get("ISSUE_BODY"),
        issue_title=env.get("ISSUE_TITLE"),
        issue_number=_optional_int(env.get("ISSUE_NUMBER")),
        repository=env.get("GITHUB_REPOSITORY") or None,
        event_name=event_name,
        pr_number=pr_number,
    )
