import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..config.settings import get_settings
from ..engine.errors import DiscountError
from ..store.plan_store import PlanStore
from .discounts_api import router as discounts_router
from .plans_api import router as plans_router
from . import state
from .state import get_plan_store

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Release pooled upstream sessions
    if state.get_engine.cache_info().currsize:
        state.get_engine().clients.close()


app = FastAPI(
    title="Segment Discounts API",
    description="Segment-based discount offers and discounted draft orders",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(discounts_router)
app.include_router(plans_router)


@app.exception_handler(DiscountError)
async def discount_error_handler(request: Request, exc: DiscountError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Invalid request body", "details": details},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error", "details": str(exc)},
    )


@app.get("/")
async def root():
    return {"status": "online", "message": "Segment Discounts API Active"}


@app.get("/system/status")
def get_status(store: PlanStore = Depends(get_plan_store)):
    settings = get_settings()
    return {
        "engine_active": True,
        "plans_count": store.count_plans(),
        "segment_targets": len(store.segment_target_keys()),
        "default_shop": settings.default_shop,
        "plan_selection_strategy": settings.plan_selection_strategy,
        "api_version": settings.api_version,
    }
