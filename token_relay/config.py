"""Relay configuration.

The database settings live in a JSON file (path from ``RELAY_CONFIG``) with the
keys ``servername``, ``username``, ``password``, ``dbname`` and ``dbtable``.
``DATABASE_URL`` in the environment replaces the URL assembled from the file.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import URL, make_url

DEFAULT_CONFIG_PATH = "relay_config.json"
DEFAULT_DRIVER = "mysql+pymysql"

REQUIRED_KEYS = ("servername", "username", "password", "dbname", "dbtable")


class ConfigError(Exception):
    """Raised when the configuration cannot be resolved."""


@dataclass
class RelayConfig:
    servername: str
    username: str
    password: str
    dbname: str
    dbtable: str
    driver: str = DEFAULT_DRIVER
    url_override: Optional[str] = None
    token_ttl_seconds: Optional[int] = None
    create_tables: bool = False

    def database_url(self):
        if self.url_override:
            return make_url(self.url_override)
        return URL.create(
            self.driver,
            username=self.username,
            password=self.password,
            host=self.servername,
            database=self.dbname,
        )


def parse_config(data, url_override=None):
    if not isinstance(data, dict):
        raise ConfigError("configuration must be a JSON object")
    missing = [key for key in REQUIRED_KEYS if data.get(key) is None]
    if missing:
        raise ConfigError(f"missing configuration keys: {', '.join(missing)}")

    ttl = data.get("token_ttl_seconds")
    if ttl is not None and (isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0):
        raise ConfigError("token_ttl_seconds must be a positive integer")

    return RelayConfig(
        servername=str(data["servername"]),
        username=str(data["username"]),
        password=str(data["password"]),
        dbname=str(data["dbname"]),
        dbtable=str(data["dbtable"]),
        driver=data.get("driver", DEFAULT_DRIVER),
        url_override=url_override or data.get("database_url"),
        token_ttl_seconds=ttl,
        create_tables=bool(data.get("create_tables", False)),
    )


def load_config(path, url_override=None):
    """Read and validate the JSON configuration at ``path``."""
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except OSError as exc:
        raise ConfigError(f"cannot read configuration file {path}") from exc
    except ValueError as exc:
        raise ConfigError(f"configuration file {path} is not valid JSON") from exc
    return parse_config(data, url_override=url_override)


def config_from_env():
    path = os.getenv("RELAY_CONFIG", DEFAULT_CONFIG_PATH)
    return load_config(path, url_override=os.getenv("DATABASE_URL"))
