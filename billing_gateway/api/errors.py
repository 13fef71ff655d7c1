"""Translation of domain errors into HTTP responses"""

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from billing_gateway.api.dependencies import get_request_id
from billing_gateway.domain.exceptions import (
    ConcurrentModificationError,
    ContractNotFound,
    DomainException,
    DuplicatePayment,
    InstallmentAlreadyPaid,
    InvalidContractTerms,
    InvalidPaymentAmount,
    UnknownInstallment,
    UnknownLateFee,
)
from billing_gateway.infrastructure.observability.logging import log_rejection
from billing_gateway.infrastructure.observability.metrics import record_rejection

ERROR_STATUS = {
    ContractNotFound: 404,
    UnknownInstallment: 404,
    UnknownLateFee: 404,
    DuplicatePayment: 409,
    InstallmentAlreadyPaid: 409,
    ConcurrentModificationError: 409,
    InvalidContractTerms: 422,
    InvalidPaymentAmount: 422,
}


def status_for_error(error: Exception) -> int:
    return next((code for exc, code in ERROR_STATUS.items() if isinstance(error, exc)), 400)


def http_error(error: Exception, request_id: str, contract_id: str = "") -> HTTPException:
    """Translate a domain error into an HTTP error, recording the rejection"""
    record_rejection(error)
    log_rejection(request_id, contract_id, type(error).__name__, str(error))
    return HTTPException(status_code=status_for_error(error), detail=str(error))


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Last resort for domain errors an endpoint did not translate itself"""
    contract_id = request.path_params.get("contract_id", "")
    error = http_error(exc, get_request_id(request), contract_id)
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})
