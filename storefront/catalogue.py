"""
Read-only gateway to the upstream product catalogue.

The upstream has no single-item endpoint and has used several field names for
the same attribute over time, so every response goes through ``normalize_product``
before anything else sees it.
"""
import asyncio
import logging
import os
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Dict, List, Optional, TypeVar

import httpx
from dotenv import load_dotenv
from fastapi import Request

from .errors import ClientDisconnected, EmptyCatalogue, NotFound, UpstreamTimeout, UpstreamUnavailable
from .schemas import Product

load_dotenv()

logger = logging.getLogger(__name__)

CATALOGUE_API_URL = os.getenv("CATALOGUE_API_URL", "https://default-burger-api.com")
CATALOGUE_TIMEOUT_SECONDS = float(os.getenv("CATALOGUE_TIMEOUT_SECONDS", 5))
PAGE_ONE_SIZE = int(os.getenv("PAGE_ONE_SIZE", 10))
DISCONNECT_POLL_SECONDS = 0.25

T = TypeVar("T")

# Accepted upstream names per attribute, first match wins
FIELD_ALIASES: Dict[str, tuple] = {
    "id": ("id", "_id"),
    "name": ("name", "title"),
    "description": ("dsc", "description", "desc"),
    "price": ("price", "cost"),
    "image": ("img", "image", "thumbnail"),
    "rating": ("rate", "rating"),
    "reviews": ("reviews", "reviewCount"),
    "country": ("country",),
}


def _first(raw: Dict[str, Any], attribute: str) -> Any:
    for key in FIELD_ALIASES[attribute]:
        if raw.get(key) is not None:
            return raw[key]
    return None


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def normalize_product(raw: Dict[str, Any]) -> Optional[Product]:
    """Map one upstream entry to ``Product``; entries without an id are dropped."""
    if not isinstance(raw, dict):
        return None
    product_id = _first(raw, "id")
    if product_id is None:
        return None

    reviews = _to_float(_first(raw, "reviews"))
    return Product(
        id=str(product_id),
        name=_first(raw, "name"),
        description=_first(raw, "description"),
        price=_to_decimal(_first(raw, "price")),
        image=_first(raw, "image"),
        rating=_to_float(_first(raw, "rating")),
        reviews=int(reviews) if reviews is not None else 0,
        country=_first(raw, "country"),
    )


def _extract_entries(data: Any) -> List[Any]:
    # Either a bare list or {"products": [...]}
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("products"), list):
        return data["products"]
    raise UpstreamUnavailable("Invalid data format received from external API.")


async def _fetch_raw() -> Any:
    try:
        async with httpx.AsyncClient(timeout=CATALOGUE_TIMEOUT_SECONDS) as client:
            response = await client.get(CATALOGUE_API_URL)
            response.raise_for_status()
        return response.json()
    except httpx.TimeoutException:
        logger.error(f"Catalogue request timed out after {CATALOGUE_TIMEOUT_SECONDS}s")
        raise UpstreamTimeout()
    except httpx.HTTPStatusError as e:
        logger.error(f"Catalogue returned {e.response.status_code}")
        raise UpstreamUnavailable()
    except httpx.RequestError as e:
        logger.error(f"Catalogue is unreachable: {e}")
        raise UpstreamUnavailable("Network Error: Unable to fetch from external API.")
    except ValueError:
        logger.error("Catalogue returned a body that is not JSON")
        raise UpstreamUnavailable("Invalid data format received from external API.")


async def fetch_listing() -> List[Product]:
    entries = _extract_entries(await _fetch_raw())
    products = [p for p in (normalize_product(e) for e in entries) if p is not None]
    if not products:
        raise EmptyCatalogue()
    return products


async def fetch_page_one() -> List[Product]:
    return (await fetch_listing())[:PAGE_ONE_SIZE]


async def fetch_by_id(product_id: str) -> Product:
    """Linear scan of the full listing; ids compare as strings."""
    if not product_id:
        raise NotFound("Product not found.")
    entries = _extract_entries(await _fetch_raw())
    wanted = str(product_id)
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if any(entry.get(key) is not None and str(entry[key]) == wanted for key in FIELD_ALIASES["id"]):
            product = normalize_product(entry)
            if product is not None:
                return product
    raise NotFound("Product not found.")


async def while_connected(request: Request, fetch: Awaitable[T]) -> T:
    """Await ``fetch``, cancelling it if the caller hangs up first."""
    task = asyncio.ensure_future(fetch)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info(f"Client left {request.url.path}, cancelling catalogue request")
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()
