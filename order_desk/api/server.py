"""
HTTP API - FastAPI Application
==============================

Exposes the storefront order contracts:

- ``POST /api/orders``          submit an order
- ``GET  /api/orders/summary``  count plus every stored order, most-recent-last
- ``GET  /api/orders/export``   spreadsheet attachment of every order line

The OrderManager (and through it the single OrderStore) is attached to the
application at construction and handed to endpoints with ``Depends``.

Usage:
    order-desk serve --config config/default.yaml
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool

from .. import __version__
from ..order.errors import SerializationError, StorageError, ValidationError
from ..order.manager import OrderManager

logger = logging.getLogger(__name__)

INVALID_BODY_MESSAGE = "Invalid JSON body."
SAVE_FAILED_MESSAGE = "Failed to save order."
LOAD_FAILED_MESSAGE = "Failed to load orders."
EXPORT_FAILED_MESSAGE = "Failed to export orders."


def get_order_manager(request: Request) -> OrderManager:
    """Dependency returning the application's OrderManager."""
    return request.app.state.order_manager


def create_app(order_manager: OrderManager, static_dir: Optional[str] = None) -> FastAPI:
    """
    Build the API application around an existing OrderManager.

    Args:
        order_manager: Shared order operations for this process
        static_dir: Optional directory of storefront pages mounted at ``/``
    """
    app = FastAPI(
        title="Order Desk API",
        description="Order intake, summary and spreadsheet export.",
        version=__version__,
    )
    app.state.order_manager = order_manager

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={'error': exc.message})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        message = SAVE_FAILED_MESSAGE if request.method == 'POST' else LOAD_FAILED_MESSAGE
        return JSONResponse(status_code=500, content={'error': message})

    @app.exception_handler(SerializationError)
    async def serialization_error_handler(request: Request, exc: SerializationError):
        return JSONResponse(status_code=500, content={'error': EXPORT_FAILED_MESSAGE})

    @app.post("/api/orders", status_code=201, summary="Submit an order")
    async def submit_order(request: Request,
                           manager: OrderManager = Depends(get_order_manager)) -> Dict[str, Any]:
        # An empty body is an empty submission, rejected field by field
        body = await request.body()
        try:
            payload = json.loads(body) if body.strip() else {}
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JSONResponse(status_code=400, content={'error': INVALID_BODY_MESSAGE})

        if not isinstance(payload, dict):
            return JSONResponse(status_code=400, content={'error': INVALID_BODY_MESSAGE})

        # Store appends block on file I/O and the store lock
        result = await run_in_threadpool(manager.submit_order, payload)
        return {
            'message': 'Order placed successfully.',
            'orderId': result.order_id,
            'orderCount': result.order_count,
        }

    @app.get("/api/orders/summary", summary="Order count and all orders")
    def order_summary(manager: OrderManager = Depends(get_order_manager)) -> Dict[str, Any]:
        return manager.summary().to_dict()

    @app.get("/api/orders/export", summary="Download orders as a spreadsheet")
    def export_orders(manager: OrderManager = Depends(get_order_manager)) -> Response:
        document = manager.export()
        return Response(
            content=document.content,
            media_type=document.media_type,
            headers={'Content-Disposition': f'attachment; filename="{document.filename}"'},
        )

    if static_dir:
        static_path = Path(static_dir)
        if static_path.is_dir():
            app.mount("/", StaticFiles(directory=str(static_path), html=True), name="static")
            logger.info(f"Serving storefront pages from {static_path}")
        else:
            logger.warning(f"Static directory not found, serving API only: {static_path}")

    return app
