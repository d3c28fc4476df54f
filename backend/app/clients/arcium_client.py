# -*- coding: utf-8 -*-
"""Async client for the Arcium encrypted computation API."""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError

from app.config import GatewaySettings
from app.contracts import (
    COLLATERAL_VALIDATION,
    INTEREST_CALCULATION,
    RISK_ASSESSMENT,
    CollateralValidation,
    FunctionContract,
    InterestCalculation,
    RiskAssessment,
    known_function_names,
)
from app.crypto import PayloadEncryptor, build_encryptor
from app.errors import (
    CollateralValidationFailed,
    ComputationFailed,
    ComputationTimeout,
    InterestCalculationFailed,
    NoNodeAvailable,
    RiskAssessmentFailed,
    StatusUnavailable,
    SubmissionFailed,
)
from app.models import (
    ComputationRequest,
    ComputationResult,
    ComputationState,
    ComputationStatus,
    CostEstimate,
    ExecutionNode,
    NetworkStatus,
)
from app.polling import PollTimeout, poll_until

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class OnFailure(str, Enum):
    DEFAULT = "default"  # log and substitute a safe value
    RESULT = "result"  # fold into a failed ComputationResult
    RAISE = "raise"  # propagate as an ArciumError


FAILURE_POLICY: Dict[str, OnFailure] = {
    "run_encrypted_computation": OnFailure.RESULT,
    "get_computation_status": OnFailure.RAISE,
    "get_network_status": OnFailure.DEFAULT,
    "get_computation_history": OnFailure.DEFAULT,
    "estimate_computation_cost": OnFailure.DEFAULT,
    "get_available_functions": OnFailure.DEFAULT,
    "health_check": OnFailure.DEFAULT,
    "assess_risk": OnFailure.RAISE,
    "validate_collateral": OnFailure.RAISE,
    "calculate_interest": OnFailure.RAISE,
}

FALLBACKS: Dict[str, Callable[[], Any]] = {
    "get_network_status": NetworkStatus.disconnected,
    "get_computation_history": list,
    "estimate_computation_cost": CostEstimate,
    "get_available_functions": known_function_names,
    "health_check": lambda: False,
}


def _defaults_on_failure(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
    """Swallow any failure of ``func`` and return its entry in FALLBACKS."""
    operation = func.__name__
    if FAILURE_POLICY.get(operation) is not OnFailure.DEFAULT or operation not in FALLBACKS:
        raise RuntimeError(f"{operation} has no default-on-failure policy")
    fallback = FALLBACKS[operation]

    @functools.wraps(func)
    async def wrapper(self: "ArciumClient", *args: Any, **kwargs: Any) -> Any:
        try:
            return await func(self, *args, **kwargs)
        except Exception as exc:
            logger.warning("%s failed, returning default: %s", operation, exc)
            return fallback()

    return wrapper


def _unwrap_list(data: Any, key: str) -> List[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    raise ValueError(f"Expected a list or an object with '{key}'")


class ArciumClient:
    """Talks to the Arcium network over HTTP.

    ``run_encrypted_computation`` chains four remote steps (pick an MXE,
    encrypt the inputs, submit, poll); the other methods map one-to-one to a
    network endpoint. What each method does on failure is listed in
    ``FAILURE_POLICY``.
    """

    def __init__(
        self,
        settings: GatewaySettings,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        encryptor: Optional[PayloadEncryptor] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings
        self._owns_http = http_client is None
        if http_client is None:
            headers = {"Content-Type": "application/json"}
            if settings.api_key:
                headers["Authorization"] = f"Bearer {settings.api_key}"
            http_client = httpx.AsyncClient(
                base_url=settings.api_url,
                headers=headers,
                timeout=settings.request_timeout,
            )
        self._http = http_client
        self._encryptor = encryptor or build_encryptor(settings.payload_cipher)
        self._sleep = sleep
        self._clock = clock
        logger.info(
            "Arcium client ready (api_url=%s, api_key_set=%s, cipher=%s)",
            settings.api_url,
            bool(settings.api_key),
            self._encryptor.scheme,
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "ArciumClient":
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._http.request(method, f"{API_PREFIX}{path}", **kwargs)
        response.raise_for_status()
        return response.json()

    # -------------------------------------------------------------------------
    # Composite computation
    # -------------------------------------------------------------------------

    async def _select_node(self) -> ExecutionNode:
        data = await self._request("GET", "/mxe/available")
        nodes = _unwrap_list(data, "mxes")
        if not nodes:
            raise NoNodeAvailable("No available MXE found")
        # First advertised node; capacity is not considered.
        return ExecutionNode.model_validate(nodes[0])

    async def _submit(self, request: ComputationRequest, node: ExecutionNode) -> str:
        payload = self._encryptor.encrypt(request.inputs, node.public_key)
        body = {
            "functionName": request.function_name,
            "mxeId": node.id,
            "encryptedInputs": payload.ciphertext,
            "nonce": payload.nonce,
            "publicKey": payload.public_key,
            "scheme": payload.scheme,
            "metadata": request.metadata or {},
        }
        data = await self._request("POST", "/computations", json=body)
        computation_id = None
        if isinstance(data, dict):
            computation_id = data.get("computationId") or data.get("id")
        if not computation_id:
            raise SubmissionFailed("Failed to submit computation: no computation id returned")
        return str(computation_id)

    async def _fetch_status(self, computation_id: str) -> ComputationStatus:
        data = await self._request("GET", f"/computations/{computation_id}")
        if isinstance(data, dict):
            data.setdefault("id", computation_id)
        return ComputationStatus.model_validate(data)

    async def _wait_for_completion(self, computation_id: str) -> ComputationStatus:
        try:
            status = await poll_until(
                lambda: self._fetch_status(computation_id),
                lambda snapshot: snapshot.status.is_terminal,
                interval=self.settings.poll_interval,
                timeout=self.settings.poll_timeout,
                sleep=self._sleep,
                clock=self._clock,
            )
        except PollTimeout as exc:
            raise ComputationTimeout(
                f"Computation {computation_id} timed out after {self.settings.poll_timeout:g}s"
            ) from exc
        if status.status is ComputationState.FAILED:
            raise ComputationFailed(f"Computation failed: {status.error or 'unknown error'}")
        return status

    def _elapsed_ms(self, started: float) -> int:
        return max(0, int(round((self._clock() - started) * 1000)))

    async def run_encrypted_computation(self, request: ComputationRequest) -> ComputationResult:
        """Run ``request`` on the first available MXE and wait for the result.

        Never raises for failures inside the flow; they come back as a
        ``ComputationResult`` with ``success=False``.
        """
        started = self._clock()
        computation_id: Optional[str] = None
        try:
            node = await self._select_node()
            computation_id = await self._submit(request, node)
            logger.info(
                "Submitted %s to MXE %s as computation %s",
                request.function_name,
                node.id,
                computation_id,
            )
            status = await self._wait_for_completion(computation_id)
        except Exception as exc:
            logger.error("Encrypted computation %s failed: %s", request.function_name, exc, exc_info=True)
            return ComputationResult(
                success=False,
                computation_id=computation_id,
                error=str(exc),
                execution_time=self._elapsed_ms(started),
            )

        elapsed = self._elapsed_ms(started)
        logger.info("Computation %s completed in %d ms", computation_id, elapsed)
        return ComputationResult(
            success=True,
            result=status.result,
            computation_id=computation_id,
            execution_time=elapsed,
            gas_used=status.gas_used,
        )

    # -------------------------------------------------------------------------
    # Direct lookups
    # -------------------------------------------------------------------------

    async def get_computation_status(self, computation_id: str) -> ComputationStatus:
        try:
            return await self._fetch_status(computation_id)
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            raise StatusUnavailable(f"Failed to get computation status: {exc}") from exc

    @_defaults_on_failure
    async def get_network_status(self) -> NetworkStatus:
        data = await self._request("GET", "/network/status")
        if not isinstance(data, dict):
            raise ValueError("Network status must be an object")
        return NetworkStatus.model_validate(data)

    @_defaults_on_failure
    async def get_computation_history(self, limit: int = 50) -> List[ComputationStatus]:
        data = await self._request("GET", "/computations", params={"limit": limit})
        history: List[ComputationStatus] = []
        for item in _unwrap_list(data, "computations"):
            try:
                history.append(ComputationStatus.model_validate(item))
            except ValueError as exc:
                logger.warning("Skipping malformed history entry: %s", exc)
        return history

    @_defaults_on_failure
    async def estimate_computation_cost(self, request: ComputationRequest) -> CostEstimate:
        body = {
            "functionName": request.function_name,
            "inputCount": len(request.inputs),
            "metadata": request.metadata or {},
        }
        data = await self._request("POST", "/computations/estimate", json=body)
        if not isinstance(data, dict):
            raise ValueError("Cost estimate must be an object")
        return CostEstimate.model_validate(data)

    @_defaults_on_failure
    async def get_available_functions(self) -> List[str]:
        data = await self._request("GET", "/functions")
        names: List[str] = []
        for item in _unwrap_list(data, "functions"):
            if isinstance(item, dict):
                item = item.get("name")
            if item:
                names.append(str(item))
        return names

    @_defaults_on_failure
    async def health_check(self) -> bool:
        response = await self._http.get(f"{API_PREFIX}/health")
        return response.is_success

    # -------------------------------------------------------------------------
    # Confidential finance functions
    # -------------------------------------------------------------------------

    async def _run_contract(
        self,
        contract: FunctionContract,
        error_cls: type,
        label: str,
        *args: Any,
    ) -> Any:
        result = await self.run_encrypted_computation(contract.build_request(*args))
        if not result.success:
            raise error_cls(f"{label} failed: {result.error}")
        try:
            return contract.decode(result.result, computation_id=result.computation_id)
        except ValidationError as exc:
            raise error_cls(f"{label} failed: could not decode result: {exc}") from exc

    async def assess_risk(self, encrypted_params: Any) -> RiskAssessment:
        return await self._run_contract(
            RISK_ASSESSMENT, RiskAssessmentFailed, "Risk assessment", encrypted_params
        )

    async def validate_collateral(self, collateral_value: float, loan_amount: float) -> CollateralValidation:
        return await self._run_contract(
            COLLATERAL_VALIDATION,
            CollateralValidationFailed,
            "Collateral validation",
            collateral_value,
            loan_amount,
        )

    async def calculate_interest(self, principal: float, rate: float, period: float) -> InterestCalculation:
        return await self._run_contract(
            INTEREST_CALCULATION,
            InterestCalculationFailed,
            "Interest calculation",
            principal,
            rate,
            period,
        )


__all__ = ["ArciumClient", "FAILURE_POLICY", "FALLBACKS", "OnFailure"]
