# -*- coding: utf-8 -*-
"""Typed input/output contracts for the known Arcium functions.

The network returns a function's output either as a positional array or as
an object. Each contract names the output fields in positional order; a
missing or falsy value falls back to the field default of the output model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel

from app.models import CamelModel, ComputationRequest


class RiskAssessment(CamelModel):
    risk_score: float = 50
    approved: bool = False
    max_amount: float = 0
    confidence: float = 0.5
    computation_id: Optional[str] = None


class CollateralValidation(CamelModel):
    is_valid: bool = False
    current_ratio: float = 0
    required_ratio: float = 1.5
    computation_id: Optional[str] = None


class InterestCalculation(CamelModel):
    interest: float = 0
    total_amount: float = 0
    effective_rate: float = 0
    computation_id: Optional[str] = None


@dataclass(frozen=True)
class FunctionContract:
    name: str
    input_names: Tuple[str, ...]
    output_model: Type[BaseModel]
    output_fields: Tuple[str, ...]

    def build_request(self, *args: Any, metadata: Optional[Dict[str, Any]] = None) -> ComputationRequest:
        if len(args) != len(self.input_names):
            raise TypeError(
                f"{self.name} expects {len(self.input_names)} inputs "
                f"({', '.join(self.input_names)}), got {len(args)}"
            )
        return ComputationRequest(function_name=self.name, inputs=list(args), metadata=metadata)

    def _field_value(self, raw: Dict[str, Any], field_name: str) -> Any:
        alias = self.output_model.model_fields[field_name].alias
        if alias and alias in raw:
            return raw[alias]
        return raw.get(field_name)

    def decode(self, raw: Any, computation_id: Optional[str] = None) -> BaseModel:
        """Map a raw function result onto the output model."""
        if isinstance(raw, dict):
            values = [self._field_value(raw, name) for name in self.output_fields]
        elif isinstance(raw, (list, tuple)):
            values = list(raw)
        elif raw is None:
            values = []
        else:
            values = [raw]

        data: Dict[str, Any] = {}
        for field_name, value in zip(self.output_fields, values):
            if value:
                data[field_name] = value
        return self.output_model(computation_id=computation_id, **data)


RISK_ASSESSMENT = FunctionContract(
    name="riskAssessment",
    input_names=("encryptedParams",),
    output_model=RiskAssessment,
    output_fields=("risk_score", "approved", "max_amount", "confidence"),
)

COLLATERAL_VALIDATION = FunctionContract(
    name="collateralValidation",
    input_names=("collateralValue", "loanAmount"),
    output_model=CollateralValidation,
    output_fields=("is_valid", "current_ratio", "required_ratio"),
)

INTEREST_CALCULATION = FunctionContract(
    name="interestCalculation",
    input_names=("principal", "rate", "time"),
    output_model=InterestCalculation,
    output_fields=("interest", "total_amount", "effective_rate"),
)

CONTRACTS: Dict[str, FunctionContract] = {
    contract.name: contract
    for contract in (RISK_ASSESSMENT, COLLATERAL_VALIDATION, INTEREST_CALCULATION)
}


def known_function_names() -> List[str]:
    return list(CONTRACTS)
