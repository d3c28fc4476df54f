# -*- coding: utf-8 -*-
"""Error types raised by the Arcium client."""


class ArciumError(Exception):
    """Base class for failures talking to the Arcium network.

    ``status_code`` is the HTTP status the gateway answers with when the
    error reaches an endpoint.
    """

    status_code = 502


class NoNodeAvailable(ArciumError):
    status_code = 503


class EncryptionFailed(ArciumError):
    pass


class SubmissionFailed(ArciumError):
    pass


class ComputationFailed(ArciumError):
    pass


class ComputationTimeout(ArciumError):
    status_code = 504


class StatusUnavailable(ArciumError):
    pass


class RiskAssessmentFailed(ArciumError):
    pass


class CollateralValidationFailed(ArciumError):
    pass


class InterestCalculationFailed(ArciumError):
    pass
