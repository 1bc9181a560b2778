"""Mission-state derivation from a decoded sample.

The lookup is total: codes missing from either table classify as
``Stage.UNKNOWN`` / ``FaultCode.UNKNOWN_FAULT`` rather than failing.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gcslink.models.telemetry import DerivedState, FaultCode, Stage

if TYPE_CHECKING:
    from gcslink.models.telemetry import TelemetrySample

logger = logging.getLogger(__name__)

STAGE_TABLE: dict[int, Stage] = {
    0: Stage.PRE_LAUNCH,
    1: Stage.READY_TO_LAUNCH,
    2: Stage.ASCENDING,
    3: Stage.CRUISING,
    4: Stage.DESCENDING,
    5: Stage.LANDED,
}

FAULT_TABLE: dict[int, FaultCode] = {
    0: FaultCode.NO_ERROR,
    1: FaultCode.CONTAINER_DESCENT_RATE_FAILURE,
    2: FaultCode.PAYLOAD_DESCENT_RATE_FAILURE,
    3: FaultCode.CONTAINER_POSITION_FAILURE,
    4: FaultCode.PAYLOAD_POSITION_FAILURE,
    5: FaultCode.RELEASE_FAILURE,
}


def stage_for(code: int) -> Stage:
    return STAGE_TABLE.get(code, Stage.UNKNOWN)


def fault_for(code: int) -> FaultCode:
    return FAULT_TABLE.get(code, FaultCode.UNKNOWN_FAULT)


def derive(sample: TelemetrySample) -> DerivedState:
    """Classify *sample* into a launch stage and fault condition."""
    stage = stage_for(sample.launch_stage)
    fault = fault_for(sample.error_code)
    if stage is Stage.UNKNOWN:
        logger.debug("Unmapped launch status %d at t=%s", sample.launch_stage, sample.timestamp)
    if fault is FaultCode.UNKNOWN_FAULT:
        logger.debug("Unmapped error code %d at t=%s", sample.error_code, sample.timestamp)
    return DerivedState(stage=stage, fault=fault)
