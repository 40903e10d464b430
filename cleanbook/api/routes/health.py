# cleanbook/api/routes/health.py

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from cleanbook.api.deps import get_context
from cleanbook.core.errors import StoreUnavailable
from cleanbook.services.context import StoreContext

router = APIRouter(tags=["health"])


@router.get("/healthz", include_in_schema=False)
async def healthz():
    return {"ok": True}


@router.get("/readyz", include_in_schema=False)
async def readyz(context: StoreContext = Depends(get_context)):
    """Probe both stores and report which one would serve the next call."""
    health = await context.prober.check_all()
    try:
        active = (await context.selector.select_active_store()).value
    except StoreUnavailable:
        active = None

    body = {
        "stores": {kind.value: ok for kind, ok in health.items()},
        "primary": context.selector.primary.value,
        "policy": context.selector.policy,
        "active": active,
        "mirror": {
            "enabled": context.mirror.enabled,
            "pending": context.mirror.pending,
            "mirrored": context.mirror.mirrored,
            "failed": context.mirror.failed,
        },
    }
    return JSONResponse(body, status_code=200 if any(health.values()) else 503)
