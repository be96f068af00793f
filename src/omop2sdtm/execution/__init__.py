"""Transform engine and per-operation handlers."""

from omop2sdtm.execution.engine import (
    SourceRecord,
    TargetRecord,
    TransformEngine,
    apply_specification,
)
from omop2sdtm.execution.operations import OPERATION_HANDLERS

__all__ = [
    "OPERATION_HANDLERS",
    "SourceRecord",
    "TargetRecord",
    "TransformEngine",
    "apply_specification",
]
