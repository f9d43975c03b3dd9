from __future__ import annotations

import json
from typing import Any

import requests
from requests import Response
from requests.exceptions import (
    ConnectionError as ReqConnectionError,
)
from requests.exceptions import (
    RequestException,
    Timeout,
)

from leader_reporter.shared.app_logging import structlog
from leader_reporter.shared.config import ReportCfg
from leader_reporter.shared.errors import MalformedScheduleError, ReportingError
from leader_reporter.shared.helper import truncate
from leader_reporter.shared.schema import ReportPayload

logger = structlog.get_logger(__name__)


def parse_schedule(raw_schedule: str) -> Any:
    try:
        return json.loads(raw_schedule)
    except json.JSONDecodeError as e:
        raise MalformedScheduleError(f"Leadership schedule is not valid JSON: {e}") from e


def _error_body(resp: Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return truncate(resp.text)  # HTML error pages can be long


class ReportClient:
    """Posts leadership schedules to the reporting API. One attempt per call, no retries."""

    def __init__(self, cfg: ReportCfg, session: requests.Session | None = None):
        self.cfg = cfg
        self.session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.cfg.token}"} if self.cfg.token else {}

    def report(self, pool_id: str, epoch: int, raw_schedule: str) -> Response:
        """
        Send `raw_schedule` for `pool_id` and `epoch`.

        `epoch` is the value the caller based its decision on, so the payload
        and the marker written afterwards always agree.

        Raises MalformedScheduleError before any network call if the schedule
        is not JSON, and ReportingError for transport failures or a status >= 400.
        """
        payload = ReportPayload(pool_id=pool_id, epoch=epoch, schedule=parse_schedule(raw_schedule))

        logger.info("Sending schedule", url=self.cfg.endpoint, pool_id=pool_id, epoch=epoch)
        try:
            resp: Response = self.session.post(
                self.cfg.endpoint,
                json=payload.to_dict(),
                headers=self._headers(),
                timeout=self.cfg.timeout_s,
            )
        except Timeout as e:
            raise ReportingError(f"Reporting API timed out after {self.cfg.timeout_s}s: {e}") from e
        except ReqConnectionError as e:
            raise ReportingError(f"Reporting API unreachable: {e}") from e
        except RequestException as e:
            raise ReportingError(f"Request to reporting API failed: {e}") from e

        logger.info("API response received", status_code=resp.status_code)

        if resp.status_code >= 400:
            err_body = _error_body(resp)
            logger.error("API response data (error)", status_code=resp.status_code, error_body=err_body)
            raise ReportingError(f"Reporting API returned HTTP {resp.status_code}", status_code=resp.status_code)

        return resp
