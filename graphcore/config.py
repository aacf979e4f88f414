"""Persistent CLI configuration (tenant, client id, scopes).

Stored as YAML at ``$M365_CONFIG`` or ``<config root>/m365/config.yaml``.
Environment variables ``M365_TENANT_ID`` and ``M365_CLIENT_ID`` override
the file.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .cli_errors import ConfigError
from .constants import GRAPH_API_SCOPES, default_config_path

__all__ = ["Config", "ConfigManager", "load_yaml", "dump_yaml", "resolve_config"]

ENV_TENANT_ID = "M365_TENANT_ID"
ENV_CLIENT_ID = "M365_CLIENT_ID"


def load_yaml(path: Optional[str]) -> Dict[str, Any]:
    """Load a YAML mapping; returns {} if the file is missing or empty."""
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        return {}
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"failed to read config {p}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse config {p}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config {p} must be a mapping, got {type(data).__name__}")
    return data


def dump_yaml(path: str, data: Dict[str, Any]) -> None:
    """Write a mapping to YAML (dir 0700, file 0600)."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    target.write_text(
        yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8"
    )
    os.chmod(target, 0o600)


@dataclass
class Config:
    tenant_id: str = ""
    client_id: str = ""
    scopes: List[str] = field(default_factory=lambda: list(GRAPH_API_SCOPES))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Config":
        scopes = data.get("scopes") or []
        if isinstance(scopes, str):
            scopes = [s for s in scopes.replace(",", " ").split() if s]
        return cls(
            tenant_id=str(data.get("tenant_id") or ""),
            client_id=str(data.get("client_id") or ""),
            scopes=[str(s) for s in scopes] or list(GRAPH_API_SCOPES),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.tenant_id:
            out["tenant_id"] = self.tenant_id
        if self.client_id:
            out["client_id"] = self.client_id
        if self.scopes:
            out["scopes"] = list(self.scopes)
        return out

    @property
    def is_complete(self) -> bool:
        return bool(self.tenant_id and self.client_id)


class ConfigManager:
    """Load and save the YAML config file."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or default_config_path()

    def load(self) -> Config:
        return Config.from_dict(load_yaml(self.path))

    def save(self, config: Config) -> None:
        try:
            dump_yaml(self.path, config.to_dict())
        except OSError as exc:
            raise ConfigError(f"failed to save config {self.path}: {exc}") from exc


def resolve_config(
    manager: Optional[ConfigManager] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """Config file values with environment overrides applied."""
    env = os.environ if environ is None else environ
    cfg = (manager or ConfigManager()).load()
    tenant = env.get(ENV_TENANT_ID)
    client = env.get(ENV_CLIENT_ID)
    if tenant:
        cfg.tenant_id = tenant
    if client:
        cfg.client_id = client
    return cfg
