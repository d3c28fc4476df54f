# -*- coding: utf-8 -*-
"""Pydantic models for gateway payloads and Arcium network responses."""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase JSON on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ComputationState(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ComputationState.COMPLETED, ComputationState.FAILED)


# =============================================================================
# GATEWAY REQUESTS
# =============================================================================


class ComputationRequest(CamelModel):
    """A function invocation to run on the Arcium network."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    function_name: str = Field(min_length=1)
    inputs: List[Any] = Field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None


class RiskAssessmentRequest(CamelModel):
    encrypted_params: Any


class CollateralValidationRequest(CamelModel):
    collateral_value: float
    loan_amount: float


class InterestCalculationRequest(CamelModel):
    principal: float
    rate: float
    time: float


# =============================================================================
# RESULTS
# =============================================================================


class ComputationResult(CamelModel):
    """Outcome of one encrypted computation; ``execution_time`` is in ms."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    success: bool
    result: Optional[Any] = None
    computation_id: Optional[str] = None
    error: Optional[str] = None
    execution_time: int = Field(default=0, ge=0)
    gas_used: Optional[float] = None


class ComputationStatus(CamelModel):
    """Snapshot of a computation as reported by the network."""

    id: str
    status: ComputationState
    progress: int = 0
    result: Optional[Any] = None
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    gas_used: Optional[float] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("status", mode="before")
    @classmethod
    def _normalise_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("progress", mode="before")
    @classmethod
    def _clamp_progress(cls, v: Any) -> int:
        if v is None:
            return 0
        try:
            value = float(v)
        except TypeError as exc:
            raise ValueError("progress must be a number") from exc
        if not math.isfinite(value):
            raise ValueError("progress must be a finite number")
        return max(0, min(100, int(value)))


class NetworkStatus(CamelModel):
    connected: bool = True
    active_nodes: int = 0
    average_latency: float = 0.0
    network_health: str = "unknown"
    mxe_count: int = 0
    total_computations: int = 0

    @classmethod
    def disconnected(cls) -> "NetworkStatus":
        """Fixed value reported whenever the network cannot be reached."""
        return cls(
            connected=False,
            active_nodes=0,
            average_latency=0.0,
            network_health="disconnected",
            mxe_count=0,
            total_computations=0,
        )


class CostEstimate(CamelModel):
    estimated_cost: float = 0.001
    estimated_gas: int = 100_000
    estimated_time: int = 30_000
    currency: str = "SOL"


class ExecutionNode(CamelModel):
    """An MXE (multi-party execution node) advertised by the network."""

    id: str
    public_key: str
    capacity: Optional[int] = None
    status: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v


class EncryptedPayload(CamelModel):
    ciphertext: str
    nonce: str
    public_key: str
    scheme: str
