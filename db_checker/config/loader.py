"""Configuration loader: YAML files with env substitution, or plain environment variables."""

import yaml
import os
import re
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import parse_qs, unquote, urlsplit

from pydantic import ValidationError

from ..errors import ConfigError
from .models import (
    CheckerSystemConfig,
    DEFAULT_CA_FILE,
    DEFAULT_METRICS_NAMESPACE,
    DEFAULT_PORTS,
    TargetDescriptor,
)
from .settings import Settings


# Environment variable prefixes for indexed relational targets
ENV_PREFIXES = {
    "mysql": "MYSQL",
    "postgres": "POSTGRES",
}

MONGODB_SCHEMES = ("mongodb", "mongodb+srv")


class ConfigLoader:
    """Load and validate checker configuration."""

    @staticmethod
    def load_from_file(config_path: str) -> CheckerSystemConfig:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            CheckerSystemConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigError: If YAML parsing or validation fails
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r') as f:
            try:
                raw_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        raw_config = ConfigLoader._substitute_env_vars(raw_config)

        try:
            return CheckerSystemConfig(**raw_config)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

    @staticmethod
    def load_from_env() -> CheckerSystemConfig:
        """
        Discover targets and settings from environment variables.

        Indexed variables (MYSQL_HOST_0, MYSQL_HOST_1, ...) are read until the
        first incomplete index, then the unindexed set (MYSQL_HOST, ...) is
        added if complete. POSTGRES_* follows the same scheme. A MongoDB target
        is read from MONGODB_URI when DB_TYPE is "mongodb".

        Returns:
            CheckerSystemConfig: Validated configuration object

        Raises:
            ConfigError: If a setting is malformed or a required one is missing
        """
        targets: List[TargetDescriptor] = []
        for driver in ENV_PREFIXES:
            targets.extend(ConfigLoader._relational_targets_from_env(driver))

        if Settings.get("DB_TYPE", "mysql") == "mongodb":
            uri = Settings.get("MONGODB_URI", required=True)
            targets.append(ConfigLoader.parse_mongodb_uri(uri))

        try:
            return CheckerSystemConfig(
                targets=targets,
                checker={
                    "tries": Settings.get_int("TRIES", 10),
                    "probe_timeout": Settings.get_float("PROBE_TIMEOUT", 5.0),
                },
                exporter={
                    "enabled": Settings.get_bool("EXPORTER", False),
                    "port": Settings.get_int("EXPORTER_PORT", 38080),
                    "check_interval": Settings.get_float("CHECK_INTERVAL", 30.0),
                    "metrics_namespace": Settings.get("METRICS_NAMESPACE", DEFAULT_METRICS_NAMESPACE),
                },
                log_level=Settings.get("LOG_LEVEL", "INFO"),
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration from environment: {e}") from e

    @staticmethod
    def parse_mongodb_uri(uri: str) -> TargetDescriptor:
        """
        Build a MongoDB target from a mongodb:// or mongodb+srv:// URI.

        The URI is kept as-is and handed to the driver, so every option it
        carries (authSource, replicaSet, TLS settings, seed lists) applies.
        Host, port and database name are read from it for logs and metric
        labels; with a seed list the first host labels the target.

        Raises:
            ConfigError: If the URI is malformed or names no database
        """
        scheme, sep, rest = uri.partition("://")
        if not sep or scheme not in MONGODB_SCHEMES:
            raise ConfigError(f"Error: cannot get db from uri: unsupported scheme '{scheme}'")

        netloc, _, path_and_query = rest.partition("/")
        path, _, query_string = path_and_query.partition("?")
        userinfo, _, host_list = netloc.rpartition("@")
        hosts = host_list.split(",")

        try:
            first_host = urlsplit(f"//{hosts[0]}")
            port = first_host.port
        except ValueError as e:
            raise ConfigError(f"Error: cannot get db from uri: {e}") from e

        if not first_host.hostname:
            raise ConfigError("Error: cannot get db from uri: no host")
        if scheme == "mongodb+srv" and (len(hosts) > 1 or port is not None):
            raise ConfigError("Error: cannot get db from uri: mongodb+srv takes one host and no port")

        name = unquote(path)
        if not name:
            raise ConfigError("Error: cannot get db from uri: no database in path")

        # MongoDB option names are case-insensitive
        options = {key.lower(): values for key, values in parse_qs(query_string).items()}
        tls_requested = "true" in options.get("tls", []) + options.get("ssl", [])
        ca_files = options.get("tlscafile", [])
        user, _, password = userinfo.partition(":")

        return TargetDescriptor(
            driver="mongodb",
            host=first_host.hostname,
            port=port or DEFAULT_PORTS["mongodb"],
            name=name,
            user=unquote(user),
            password=unquote(password),
            tls=tls_requested or bool(ca_files),
            tls_ca_file=ca_files[0] if ca_files else DEFAULT_CA_FILE,
            uri=uri,
        )

    @staticmethod
    def _relational_targets_from_env(driver: str) -> List[TargetDescriptor]:
        """Read all indexed targets for one driver, then the unindexed one."""
        prefix = ENV_PREFIXES[driver]
        targets = []

        index = 0
        while True:
            target = ConfigLoader._target_from_env(driver, prefix, f"_{index}")
            if target is None:
                break
            targets.append(target)
            index += 1

        target = ConfigLoader._target_from_env(driver, prefix, "")
        if target is not None:
            targets.append(target)

        return targets

    @staticmethod
    def _target_from_env(driver: str, prefix: str, suffix: str) -> Optional[TargetDescriptor]:
        """Return the target for one variable suffix, or None if any required part is missing."""
        name = Settings.get(f"{prefix}_NAME{suffix}")
        user = Settings.get(f"{prefix}_USER{suffix}")
        password = Settings.get(f"{prefix}_PASS{suffix}")
        host = Settings.get(f"{prefix}_HOST{suffix}")
        port = Settings.get_int(f"{prefix}_PORT{suffix}", DEFAULT_PORTS[driver])

        if not (name and user and password and host):
            return None

        try:
            return TargetDescriptor(
                driver=driver,
                host=host,
                port=port,
                name=name,
                user=user,
                password=password,
                tls=Settings.get_bool(f"{prefix}_TLS{suffix}", False),
                tls_ca_file=Settings.get(f"{prefix}_TLS_CA_FILE{suffix}", DEFAULT_CA_FILE),
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid {prefix}{suffix} target: {e}") from e

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """
        Recursively substitute ${ENV_VAR} placeholders with environment values.

        Args:
            obj: Object to process (str, dict, list, or primitive)

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, str):
            pattern = r'\$\{(\w+)\}'
            return re.sub(pattern, lambda m: os.getenv(m.group(1), ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item) for item in obj]

        return obj
