"""
Product listing (read-only; catalog management lives elsewhere).
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select

from database import LedgerStore
from db_models import Product
from deps import get_ledger_store
from domain.responses import success_response
from models import ProductSummary

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["products"])


@router.get("/products")
async def list_products(store: LedgerStore = Depends(get_ledger_store)):
    async with store.session() as session:
        res = await session.execute(select(Product).order_by(Product.id))
        products = res.scalars().all()

    data = [ProductSummary.model_validate(p).model_dump(mode="json") for p in products]
    return success_response(data=data, meta={"total": len(data)})
