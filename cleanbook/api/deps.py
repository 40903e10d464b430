# cleanbook/api/deps.py

from fastapi import Depends, Request

from cleanbook.core.errors import NotFound
from cleanbook.services.context import StoreContext
from cleanbook.services.router import OperationRouter


def get_context(request: Request) -> StoreContext:
    return request.app.state.stores


def get_router(context: StoreContext = Depends(get_context)) -> OperationRouter:
    return context.router


def require(value, entity: str, key: str):
    """Turn an empty lookup into NotFound for endpoints that need the record."""
    if value is None or value is False:
        raise NotFound(entity, key)
    return value


def page_payload(page) -> dict:
    return {
        "items": [item.model_dump() for item in page.items],
        "pagination": {
            "page": page.page,
            "limit": page.limit,
            "total": page.total,
            "total_pages": page.total_pages,
            "has_next": page.has_next,
            "has_prev": page.has_prev,
        },
    }
