from fastapi import APIRouter

from fulfillment.app.api.v1.endpoints.purchase_orders import router as purchase_orders_router
from fulfillment.app.api.v1.endpoints.goods_receipts import router as goods_receipts_router
from fulfillment.app.api.v1.endpoints.inventory import router as inventory_router

router = APIRouter()
router.include_router(purchase_orders_router, tags=["purchase_orders"])
router.include_router(goods_receipts_router, tags=["goods_receipts"])
router.include_router(inventory_router, tags=["inventory"])
