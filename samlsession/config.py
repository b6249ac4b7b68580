"""
Config system - Layered configuration with a typed read view.

Sources are merged with precedence (later overrides earlier):
config files (YAML / JSON) > .env file > environment variables > overrides.

Keys are nested mappings addressed with dotted paths, e.g.
``session.cookie.path`` reads ``{"session": {"cookie": {"path": ...}}}``.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlsplit

logger = logging.getLogger("samlsession.config")

_MISSING = object()


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


class Configuration:
    """
    Read-only view over merged configuration data.
    
    Typed getters validate the stored value and raise ``ConfigError`` on a
    type mismatch; a missing key returns the default.
    
    Example:
        >>> config = Configuration({"session": {"cookie": {"secure": True}}})
        >>> config.get_boolean("session.cookie.secure", False)
        True
        >>> config.has_value("session.cookie.path")
        False
    """
    
    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = data or {}
    
    def _lookup(self, path: str) -> Any:
        current: Any = self._data
        for part in path.split("."):
            if isinstance(current, Mapping) and part in current:
                current = current[part]
            else:
                return _MISSING
        return current
    
    def has_value(self, path: str) -> bool:
        """Check whether a key is present (a ``None`` value counts as present)."""
        return self._lookup(path) is not _MISSING
    
    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        value = self._lookup(path)
        return default if value is _MISSING else value
    
    def get_string(self, path: str, default: Optional[str] = None) -> Optional[str]:
        value = self._lookup(path)
        if value is _MISSING or value is None:
            return default
        if not isinstance(value, str):
            raise ConfigError(f"Config field '{path}' expected str, got {type(value).__name__}")
        return value
    
    def get_boolean(self, path: str, default: Optional[bool] = None) -> Optional[bool]:
        value = self._lookup(path)
        if value is _MISSING or value is None:
            return default
        if not isinstance(value, bool):
            raise ConfigError(f"Config field '{path}' expected bool, got {type(value).__name__}")
        return value
    
    def get_integer(self, path: str, default: Optional[int] = None) -> Optional[int]:
        value = self._lookup(path)
        if value is _MISSING or value is None:
            return default
        # bool is an int subclass, but never a valid integer setting
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"Config field '{path}' expected int, got {type(value).__name__}")
        return value
    
    def get_mapping(self, path: str, default: Optional[Mapping] = None) -> Mapping:
        value = self._lookup(path)
        if value is _MISSING or value is None:
            return default if default is not None else {}
        if not isinstance(value, Mapping):
            raise ConfigError(f"Config field '{path}' expected mapping, got {type(value).__name__}")
        return value
    
    def base_url_path(self) -> str:
        """
        Base path the application is served under, without a leading slash.
        
        ``baseurlpath`` may be a bare path (``saml/``) or a full URL
        (``https://idp.example.org/saml/``); only the path part is kept.
        """
        value = self.get_string("baseurlpath", "samlsession/")
        if "://" in value:
            value = value.split("://", 1)[1]
            value = value[value.find("/"):] if "/" in value else "/"
        value = value.lstrip("/")
        if value and not value.endswith("/"):
            value += "/"
        return value
    
    def base_url(self) -> str:
        """
        Base URL of the application.
        
        Absolute (scheme and host kept) when ``baseurlpath`` is a full URL,
        otherwise relative to the site root.
        """
        value = self.get_string("baseurlpath", "samlsession/")
        path = "/" + self.base_url_path()
        if "://" in value:
            parts = urlsplit(value)
            return f"{parts.scheme}://{parts.netloc}{path}"
        return path
    
    def to_dict(self) -> dict:
        """Return the underlying data dictionary."""
        return self._data


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files
    """
    
    def __init__(self, env_prefix: str = "SAMLSESS_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}
    
    @classmethod
    def load(
        cls,
        paths: Optional[list[str]] = None,
        env_prefix: str = "SAMLSESS_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Configuration:
        """
        Load configuration from multiple sources with proper merge strategy.
        
        Args:
            paths: List of config file paths (glob patterns supported)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)
            
        Returns:
            Configuration view over the merged data
        """
        loader = cls(env_prefix=env_prefix)
        
        for pattern in paths or []:
            loader._load_from_files(pattern)
        
        if env_file:
            loader._load_env_file(env_file)
        
        loader._load_from_env()
        
        if overrides:
            loader._merge_dict(loader.config_data, overrides)
        
        return Configuration(loader.config_data)
    
    def _load_from_files(self, pattern: str):
        """Load config from JSON or YAML files."""
        from glob import glob
        
        matches = sorted(glob(pattern))
        if not matches:
            logger.debug(f"No config files match {pattern!r}")
        
        for path_str in matches:
            path = Path(path_str)
            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)
            else:
                raise ConfigError(f"Unsupported config file type: {path}")
    
    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Invalid JSON in {path}: {e}") from e
        self._merge_file_data(path, data)
    
    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        import yaml
        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if data:
            self._merge_file_data(path, data)
    
    def _merge_file_data(self, path: Path, data: Any):
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping at top level")
        self._merge_dict(self.config_data, data)
    
    def _load_env_file(self, path: str):
        """Load config from .env file."""
        from dotenv import dotenv_values
        
        env_path = Path(path)
        if not env_path.exists():
            return
        
        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)
    
    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)
    
    def _set_nested(self, key: str, value: str):
        """Convert SAMLSESS_SESSION__COOKIE__SECURE to nested dict."""
        key = key[len(self.env_prefix):]
        
        # Double underscore separates nesting levels
        parts = key.lower().split("__")
        
        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        
        current[parts[-1]] = self._parse_value(value)
    
    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False
        
        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass
        
        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass
        
        return value
    
    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value
