from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, StrictInt


class ChainTip(BaseModel):
    """
    `cardano-cli query tip` output. Only `epoch` is required, the rest is
    kept for logging.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")
    epoch: StrictInt = Field(ge=0)
    block: int | None = None
    slot: int | None = None
    slot_in_epoch: int | None = Field(default=None, alias="slotInEpoch")
    slots_to_epoch_end: int | None = Field(default=None, alias="slotsToEpochEnd")
    era: str | None = None
    hash: str | None = None
    sync_progress: str | None = Field(default=None, alias="syncProgress")


class ReportPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    pool_id: str = Field(alias="poolId")
    epoch: NonNegativeInt
    schedule: Any

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
