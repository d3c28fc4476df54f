# -*- coding: utf-8 -*-
"""Arcium API gateway endpoints."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from app.api.auth import require_bearer
from app.clients.arcium_client import ArciumClient
from app.contracts import CollateralValidation, InterestCalculation, RiskAssessment
from app.errors import ArciumError
from app.models import (
    CollateralValidationRequest,
    ComputationRequest,
    ComputationResult,
    ComputationStatus,
    CostEstimate,
    InterestCalculationRequest,
    NetworkStatus,
    RiskAssessmentRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/arcium/api", tags=["arcium-api"])

_auth = [Depends(require_bearer)]


def get_arcium_client(request: Request) -> ArciumClient:
    return request.app.state.arcium_client


def _to_http_error(exc: ArciumError) -> HTTPException:
    logger.warning("Arcium request failed: %s", exc)
    return HTTPException(status_code=exc.status_code, detail=str(exc))


@router.post("/compute", response_model=ComputationResult, dependencies=_auth)
async def perform_encrypted_computation(
    payload: ComputationRequest,
    client: ArciumClient = Depends(get_arcium_client),
) -> ComputationResult:
    """Run an encrypted computation on the Arcium network."""
    return await client.run_encrypted_computation(payload)


@router.post("/risk-assessment", response_model=RiskAssessment, dependencies=_auth)
async def perform_risk_assessment(
    payload: RiskAssessmentRequest,
    client: ArciumClient = Depends(get_arcium_client),
):
    try:
        return await client.assess_risk(payload.encrypted_params)
    except ArciumError as exc:
        raise _to_http_error(exc) from exc


@router.post("/collateral-validation", response_model=CollateralValidation, dependencies=_auth)
async def perform_collateral_validation(
    payload: CollateralValidationRequest,
    client: ArciumClient = Depends(get_arcium_client),
):
    try:
        return await client.validate_collateral(payload.collateral_value, payload.loan_amount)
    except ArciumError as exc:
        raise _to_http_error(exc) from exc


@router.post("/interest-calculation", response_model=InterestCalculation, dependencies=_auth)
async def perform_interest_calculation(
    payload: InterestCalculationRequest,
    client: ArciumClient = Depends(get_arcium_client),
):
    try:
        return await client.calculate_interest(payload.principal, payload.rate, payload.time)
    except ArciumError as exc:
        raise _to_http_error(exc) from exc


@router.get("/computation/{computation_id}", response_model=ComputationStatus, dependencies=_auth)
async def get_computation_status(
    computation_id: str,
    client: ArciumClient = Depends(get_arcium_client),
):
    try:
        return await client.get_computation_status(computation_id)
    except ArciumError as exc:
        raise _to_http_error(exc) from exc


@router.get("/network-status", response_model=NetworkStatus, dependencies=_auth)
async def get_network_status(client: ArciumClient = Depends(get_arcium_client)):
    return await client.get_network_status()


@router.get("/computation-history", response_model=List[ComputationStatus], dependencies=_auth)
async def get_computation_history(
    limit: int = Query(50, ge=1, le=1000),
    client: ArciumClient = Depends(get_arcium_client),
):
    return await client.get_computation_history(limit)


@router.post("/estimate-cost", response_model=CostEstimate, dependencies=_auth)
async def estimate_computation_cost(
    payload: ComputationRequest,
    client: ArciumClient = Depends(get_arcium_client),
):
    return await client.estimate_computation_cost(payload)


@router.get("/functions", response_model=List[str], dependencies=_auth)
async def get_available_functions(client: ArciumClient = Depends(get_arcium_client)):
    return await client.get_available_functions()


@router.get("/health")
async def health_check(client: ArciumClient = Depends(get_arcium_client)):
    """Unauthenticated; reports whether the Arcium API answers."""
    healthy = await client.health_check()
    return {"healthy": healthy}
