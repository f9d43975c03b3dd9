from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, PositiveFloat, ValidationError, field_validator

from leader_reporter.settings import Settings
from leader_reporter.shared.app_logging import structlog
from leader_reporter.shared.errors import ConfigError
from leader_reporter.shared.helper import deep_update, drop_none

logger = structlog.get_logger(__name__)

MARKER_FILENAME = "last_epoch.txt"


def default_marker_path() -> Path:
    # one level above the package directory, i.e. the checkout the cron job runs from
    return Path(__file__).resolve().parents[2] / MARKER_FILENAME


class BaseConfig(BaseModel):
    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


# ---------------------------
# Sections
# ---------------------------
class NodeCfg(BaseConfig):
    cli_path: str = "cardano-cli"
    socket_path: Path | None = None  # exported as CARDANO_NODE_SOCKET_PATH when set


class PoolCfg(BaseConfig):
    pool_id: str | None = None
    genesis_file: Path | None = None
    vrf_skey_file: Path | None = None


class ReportCfg(BaseConfig):
    endpoint: str | None = None
    token: str | None = None
    timeout_s: PositiveFloat = 30.0

    @field_validator("endpoint")
    @classmethod
    def _check_scheme(cls, v: str | None) -> str | None:
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("endpoint must start with http:// or https://")
        return v


class MarkerCfg(BaseConfig):
    path: Path = default_marker_path()

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + ".lock")


# ---------------------------
# Top-level config
# ---------------------------
class ReporterConfig(BaseConfig):
    """
    Everything one reporter run needs. Built from the environment (.env included),
    optionally overridden by a YAML file.
    """

    node: NodeCfg = NodeCfg()
    pool: PoolCfg = PoolCfg()
    report: ReportCfg = ReportCfg()
    marker: MarkerCfg = MarkerCfg()

    @staticmethod
    def _settings_to_dict(settings: Settings) -> dict[str, Any]:
        return drop_none(
            {
                "node": {"cli_path": settings.cardano_cli, "socket_path": settings.cardano_node_socket_path},
                "pool": {
                    "pool_id": settings.stake_pool_id,
                    "genesis_file": settings.genesis_file,
                    "vrf_skey_file": settings.vrf_skey_file,
                },
                "report": {"endpoint": settings.api_endpoint, "token": settings.api_token},
                "marker": {"path": settings.marker_path},
            }
        )

    @classmethod
    def load(
        cls,
        path: str | Path | None = None,
        marker_path: str | Path | None = None,
        settings: Settings | None = None,
    ) -> ReporterConfig:
        """
        defaults < environment < YAML file < explicit marker path.
        Raises ConfigError if the result is invalid or incomplete.
        """
        data = cls._settings_to_dict(settings if settings is not None else Settings())

        if path is not None:
            try:
                with open(path, encoding="utf-8") as f:
                    overrides = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Cannot load config file {path}: {e}") from e
            if not isinstance(overrides, dict):
                raise ConfigError(f"Config file {path} must contain a mapping")
            data = deep_update(data, overrides)

        if marker_path is not None:
            data = deep_update(data, {"marker": {"path": marker_path}})

        try:
            config = cls(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        config.ensure_complete()
        return config

    def to_dict(self) -> dict:
        data = super().to_dict()
        if data["report"]["token"]:
            data["report"]["token"] = "***"
        return data

    def missing_fields(self) -> list[str]:
        required = {
            "STAKE_POOL_ID": self.pool.pool_id,
            "GENESIS_FILE": self.pool.genesis_file,
            "VRF_SKEY_FILE": self.pool.vrf_skey_file,
            "API_ENDPOINT": self.report.endpoint,
        }
        return [name for name, value in required.items() if not value]

    def ensure_complete(self) -> None:
        missing = self.missing_fields()
        if missing:
            raise ConfigError(f"Missing required configuration: {', '.join(missing)}")


def parse_args(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Report a stake pool's leadership schedule once per epoch")
    parser.add_argument(
        "--path",
        type=str,
        help="Optional, path to a YAML config file overriding the environment.",
    )
    parser.add_argument(
        "--marker",
        type=str,
        help=(
            "Optional, path of the last-processed-epoch file. Overrides MARKER_PATH. Installed (non-editable) "
            f"deployments should set one of the two; the default is {default_marker_path()}."
        ),
    )
    return parser.parse_args(argv)
