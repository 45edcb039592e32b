# app/api/exception_handlers.py

from typing import TYPE_CHECKING
from fastapi import Request
from fastapi.responses import JSONResponse
from exceptions.domain_exceptions import DomainException

if TYPE_CHECKING:
    from fastapi import FastAPI


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """
    Global exception handler for domain exceptions in FastAPI
    
    Returns a consistent JSON response format for all domain exceptions
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.__class__.__name__, 
            "message": exc.message,
            "details": exc.details,
            "path": request.url.path
        }
    )


def register_exception_handlers(app: "FastAPI") -> None:
    """
    Register all domain exception handlers with FastAPI app
    
    Handlers are looked up through the exception MRO, so registering the
    base class covers InvalidArgument, NotFound, InvalidStateTransition,
    StorageUnavailable and the rest of the hierarchy.
    """
    app.add_exception_handler(DomainException, domain_exception_handler)
