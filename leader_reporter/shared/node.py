from __future__ import annotations

import json
import os
import subprocess
from pathlib import Path

from pydantic import ValidationError

from leader_reporter.shared.app_logging import structlog
from leader_reporter.shared.config import NodeCfg
from leader_reporter.shared.errors import QueryError
from leader_reporter.shared.helper import truncate
from leader_reporter.shared.schema import ChainTip

logger = structlog.get_logger(__name__)

# mainnet only; not user configurable
NETWORK_FLAG = "--mainnet"


class NodeQuery:
    """Thin wrapper around the `cardano-cli query` subcommands the reporter needs."""

    def __init__(self, cfg: NodeCfg):
        self.cfg = cfg

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        if self.cfg.socket_path is not None:
            env["CARDANO_NODE_SOCKET_PATH"] = str(self.cfg.socket_path)
        return env

    def run(self, *args: str) -> str:
        """
        Run cardano-cli with `args` and return its stripped stdout.

        stderr is only logged: cardano-cli prints warnings there on successful
        calls. A non-zero exit status is what makes a call fail.
        """
        cmd = [self.cfg.cli_path, *args]
        logger.debug("Executing command", cmd=" ".join(cmd))
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, env=self._env(), check=False)
        except OSError as e:
            raise QueryError(f"Cannot execute {self.cfg.cli_path}: {e}") from e

        stderr = (proc.stderr or "").strip()
        if proc.returncode != 0:
            logger.error("Command failed", cmd=args[:2], returncode=proc.returncode, stderr=truncate(stderr))
            raise QueryError(f"`{' '.join(args[:2])}` exited with status {proc.returncode}: {truncate(stderr, 300)}")

        if stderr:
            logger.warning("Command stderr", cmd=args[:2], stderr=truncate(stderr))

        return (proc.stdout or "").strip()

    def chain_tip(self) -> ChainTip:
        output = self.run("query", "tip", NETWORK_FLAG)
        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            raise QueryError(f"`query tip` did not return JSON: {e}") from e
        if not isinstance(data, dict):
            raise QueryError("`query tip` did not return a JSON object")

        try:
            return ChainTip.model_validate(data)
        except ValidationError as e:
            raise QueryError(f"Epoch not found in `query tip` output: {e.errors()[0]['msg']}") from e

    def current_epoch(self) -> int:
        tip = self.chain_tip()
        logger.debug("Chain tip", epoch=tip.epoch, slot=tip.slot, era=tip.era, sync_progress=tip.sync_progress)
        return tip.epoch

    def leadership_schedule(self, pool_id: str, genesis_path: str | Path, vrf_key_path: str | Path) -> str:
        """
        Leadership schedule of `pool_id` for the epoch the node is in right now,
        as the raw JSON text cardano-cli printed.
        """
        logger.info("Executing leadership schedule command", pool_id=pool_id)
        return self.run(
            "query",
            "leadership-schedule",
            NETWORK_FLAG,
            "--genesis",
            str(genesis_path),
            "--stake-pool-id",
            pool_id,
            "--vrf-signing-key-file",
            str(vrf_key_path),
            "--current",
        )
