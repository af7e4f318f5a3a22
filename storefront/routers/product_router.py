from fastapi import APIRouter, Request

from .. import catalogue
from ..schemas import ProductListResponse, ProductResponse

router = APIRouter(prefix="/api", tags=["products"])


@router.get("/shopping", response_model=ProductListResponse)
async def list_products(request: Request):
    products = await catalogue.while_connected(request, catalogue.fetch_listing())
    return {
        "success": True,
        "message": "Products fetched successfully.",
        "count": len(products),
        "products": products,
    }


@router.get("/v1", response_model=ProductListResponse)
async def list_page_one(request: Request):
    products = await catalogue.while_connected(request, catalogue.fetch_page_one())
    return {"success": True, "count": len(products), "products": products}


@router.get("/product/{product_id}", response_model=ProductResponse)
async def read_product(product_id: str, request: Request):
    product = await catalogue.while_connected(request, catalogue.fetch_by_id(product_id))
    return {"success": True, "product": product}
