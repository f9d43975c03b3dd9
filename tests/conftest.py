import json
import subprocess
from unittest.mock import MagicMock

import pytest

from leader_reporter.shared.config import MarkerCfg, NodeCfg, PoolCfg, ReportCfg, ReporterConfig

POOL_ID = "pool1testpoolxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxx"
ENDPOINT = "http://reporter.test/api/schedule"

SCHEDULE = [
    {"slotNumber": 113_415_212, "slotTime": "2024-01-02T03:04:05Z"},
    {"slotNumber": 113_461_902, "slotTime": "2024-01-02T16:02:15Z"},
]


def completed(stdout: str = "", returncode: int = 0, stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=["cardano-cli"], returncode=returncode, stdout=stdout, stderr=stderr)


def tip_json(epoch) -> str:
    return json.dumps({"block": 10_000_000, "epoch": epoch, "era": "Babbage", "slot": 113_400_000, "syncProgress": "100.00"})


@pytest.fixture
def marker_path(tmp_path):
    return tmp_path / "last_epoch.txt"


@pytest.fixture
def config(marker_path):
    return ReporterConfig(
        node=NodeCfg(cli_path="cardano-cli", socket_path="/tmp/node.socket"),
        pool=PoolCfg(pool_id=POOL_ID, genesis_file="/cfg/shelley-genesis.json", vrf_skey_file="/keys/vrf.skey"),
        report=ReportCfg(endpoint=ENDPOINT, timeout_s=5),
        marker=MarkerCfg(path=marker_path),
    )


@pytest.fixture
def response_factory():
    def make(status_code: int = 200, body=None, text: str = ""):
        resp = MagicMock()
        resp.status_code = status_code
        resp.text = text
        if body is None:
            resp.json.side_effect = ValueError("no json")
        else:
            resp.json.return_value = body
        return resp

    return make
