"""
Domain Errors
Exceptions raised by services and translated to HTTP responses in main.py
"""

from typing import Any, Dict, Optional


class CiderhouseError(ValueError):
    """
    Base class for domain errors

    message is the technical description for logs; user_message is what the
    client shows verbatim (toast body). context carries the offending values.
    """
    status_code = 400
    code = "domain_error"

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_message = user_message or message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": self.user_message,
            "error": self.code,
            "context": self.context,
        }


class NotFoundError(CiderhouseError):
    """Referenced entity does not exist"""
    status_code = 404
    code = "not_found"


class QuantityValidationError(CiderhouseError):
    """Invalid quantity or unit in a conversion"""
    code = "invalid_quantity"


class TransferValidationError(CiderhouseError):
    """Transfer request violates a volume or input rule"""
    code = "transfer_invalid"


class VesselStateValidationError(CiderhouseError):
    """Vessel is not in a state that allows the operation"""
    status_code = 409
    code = "vessel_state"


class ReconciliationError(CiderhouseError):
    """Reconciliation status change is not allowed"""
    code = "reconciliation_invalid"


class PeriodFinalizedError(CiderhouseError):
    """Reporting period is already finalized"""
    status_code = 409
    code = "period_finalized"
