"""
Order endpoints — create, fetch and cancel.

Thin layer: request validation happens in the Pydantic models, business rules
in OrderService, and domain errors are rendered by the handlers in main.py.
"""

import logging

from fastapi import APIRouter, Depends, Path, status

from deps import get_order_service
from domain.responses import success_response
from models import CreateOrderRequest
from services.order_service import OrderService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["orders"])


@router.post("/orders", status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    service: OrderService = Depends(get_order_service),
):
    receipt = await service.create_order(request.user_id, request.items)
    logger.info(f"Order {receipt.order_id} created for user {request.user_id}")
    return success_response(data=receipt.model_dump(mode="json", by_alias=True))


@router.get("/orders/{order_id}")
async def get_order(
    order_id: int = Path(..., gt=0),
    service: OrderService = Depends(get_order_service),
):
    view = await service.get_order_details(order_id)
    return success_response(data=view.model_dump(mode="json", by_alias=True))


@router.put("/orders/{order_id}/cancel")
async def cancel_order(
    order_id: int = Path(..., gt=0),
    service: OrderService = Depends(get_order_service),
):
    receipt = await service.cancel_order(order_id)
    return success_response(data=receipt.model_dump(mode="json", by_alias=True))
