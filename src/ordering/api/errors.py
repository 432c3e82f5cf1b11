"""HTTP mapping for ordering errors.

Protean's handlers (``register_exception_handlers``) already turn plain
ValidationError into 400 and ObjectNotFoundError into 404. The handlers here
cover the more specific business errors; Starlette dispatches on the most
specific class, so they win for their subclasses.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import (
    AlreadyRestored,
    InsufficientStock,
    InvalidTransition,
    NotAuthorized,
    SelectionStale,
    TransactionAborted,
)


async def _selection_stale(request: Request, exc: SelectionStale) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"error": exc.messages, "code": "selection_stale", "item_ids": exc.item_ids},
    )


async def _insufficient_stock(request: Request, exc: InsufficientStock) -> JSONResponse:
    line = exc.line
    return JSONResponse(
        status_code=409,
        content={
            "error": exc.messages,
            "code": "insufficient_stock",
            "product_id": getattr(line, "product_id", None),
            "variant_id": getattr(line, "variant_id", None),
            "available": exc.available,
            "requested": exc.requested,
        },
    )


async def _invalid_transition(request: Request, exc: InvalidTransition) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"error": exc.messages, "code": "invalid_transition", "from": exc.current, "to": exc.target},
    )


async def _already_restored(request: Request, exc: AlreadyRestored) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": exc.messages, "code": "already_restored"})


async def _not_authorized(request: Request, exc: NotAuthorized) -> JSONResponse:
    return JSONResponse(status_code=403, content={"error": str(exc), "code": "forbidden"})


async def _transaction_aborted(request: Request, exc: TransactionAborted) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"error": str(exc), "code": "transaction_aborted", "retryable": True},
        headers={"Retry-After": "1"},
    )


def register_ordering_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(SelectionStale, _selection_stale)
    app.add_exception_handler(InsufficientStock, _insufficient_stock)
    app.add_exception_handler(InvalidTransition, _invalid_transition)
    app.add_exception_handler(AlreadyRestored, _already_restored)
    app.add_exception_handler(NotAuthorized, _not_authorized)
    app.add_exception_handler(TransactionAborted, _transaction_aborted)
