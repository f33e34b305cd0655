"""
Restocker Backend API
Per-user product catalogs, stock lots with expiry, and an AI chat endpoint

Run: uvicorn backend.restocker_api:create_app --factory --port 5000
"""
import logging
import time
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from backend.auth import get_current_user
from backend.auth import router as auth_router
from config.config import Config
from restock_agent.database.catalog_store import CatalogStore
from restock_agent.database.document_store import DocumentStore
from restock_agent.database.ledger_store import LedgerStore
from restock_agent.database.user_store import UserStore
from restock_agent.errors import PersistenceError, RestockError
from restock_agent.intent import IntentDispatcher, IntentParser
from restock_agent.intent.llm_client import build_chat_model
from restock_agent.inventory.catalog import CatalogService
from restock_agent.inventory.stock import StockLedgerService
from restock_agent.models import UserInDB
from restock_agent.utils import configure_logging

logger = logging.getLogger(__name__)


# ==================== Request Models ====================
# Field values are validated by the catalog/stock services so that direct
# input and AI output go through the same checks.

class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProductBatchRequest(RequestModel):
    products: List[Dict[str, Any]]


class AddStockRequest(RequestModel):
    expiry_date: Any = Field(..., description="YYYY-MM-DD")
    qty: Any = Field(..., description="Quantity added, > 0")


class UseStockRequest(RequestModel):
    used_qty: Any = Field(..., description="Quantity used, > 0")
    stock_id: str = Field(..., description="Lot id")


class ChatRequest(RequestModel):
    message: Optional[str] = None
    user_id: Optional[str] = None
    product_id: Optional[str] = None


# ==================== Dependencies ====================

def get_catalog(request: Request) -> CatalogService:
    return request.app.state.catalog


def get_stock(request: Request) -> StockLedgerService:
    return request.app.state.stock


def authorized_user_id(
    user_id: str,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
) -> str:
    """Path user id, only if it is the authenticated user"""
    if current_user.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your inventory")
    return user_id


def dump(model) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def error_status(exc: RestockError) -> int:
    # Store failures are always opaque 500s
    return 500 if isinstance(exc, PersistenceError) else exc.status_code


def error_message(exc: RestockError) -> str:
    return "Internal server error" if isinstance(exc, PersistenceError) else exc.message


# ==================== Inventory Endpoints ====================

inventory = APIRouter(tags=["inventory"])


@inventory.post("/{user_id}/product/add")
def add_product(
    entry: Dict[str, Any],
    user_id: Annotated[str, Depends(authorized_user_id)],
    catalog: Annotated[CatalogService, Depends(get_catalog)],
):
    """Add one product {name, description, measure}"""
    result, created = catalog.add_product(user_id, entry)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        content={"message": "Product added successfully", "catalog": dump(result)},
    )


@inventory.post("/{user_id}/products")
def add_products(
    payload: ProductBatchRequest,
    user_id: Annotated[str, Depends(authorized_user_id)],
    catalog: Annotated[CatalogService, Depends(get_catalog)],
):
    """Add a batch of products; one invalid entry rejects the batch"""
    result, created = catalog.add_products(user_id, payload.products)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        content={
            "message": f"{len(payload.products)} product(s) added successfully",
            "catalog": dump(result),
        },
    )


@inventory.get("/{user_id}/product")
def list_products(
    user_id: Annotated[str, Depends(authorized_user_id)],
    catalog: Annotated[CatalogService, Depends(get_catalog)],
):
    return [dump(product) for product in catalog.list_products(user_id)]


@inventory.get("/{user_id}/product/{product_id}/stock")
def list_stock(
    product_id: str,
    user_id: Annotated[str, Depends(authorized_user_id)],
    stock: Annotated[StockLedgerService, Depends(get_stock)],
):
    return [dump(lot) for lot in stock.list_lots_for_product(user_id, product_id)]


@inventory.post("/{user_id}/product/{product_id}/stock/add")
def add_stock(
    product_id: str,
    payload: AddStockRequest,
    user_id: Annotated[str, Depends(authorized_user_id)],
    stock: Annotated[StockLedgerService, Depends(get_stock)],
):
    ledger, created = stock.add_lot(user_id, product_id, payload.expiry_date, payload.qty)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        content={"message": "Stock added successfully", "ledger": dump(ledger)},
    )


@inventory.post("/{user_id}/product/{product_id}/stock/use")
def use_stock(
    product_id: str,
    payload: UseStockRequest,
    user_id: Annotated[str, Depends(authorized_user_id)],
    stock: Annotated[StockLedgerService, Depends(get_stock)],
):
    ledger = stock.consume_from_lot(user_id, product_id, payload.stock_id, payload.used_qty)
    return {"message": "Stock used successfully", "ledger": dump(ledger)}


@inventory.get("/{user_id}/instock")
def list_all_stock(
    user_id: Annotated[str, Depends(authorized_user_id)],
    stock: Annotated[StockLedgerService, Depends(get_stock)],
):
    """All stock of the user, joined with product names"""
    stock_with_products = stock.list_all_stock_for_user(user_id)
    return {
        "message": "Stock is found" if stock_with_products else "No stock found",
        "stockWithProducts": [dump(entry) for entry in stock_with_products],
    }


# ==================== AI Chat ====================

chat = APIRouter(tags=["chat"])


@chat.post("/chat/ai")
async def chat_ai(
    payload: ChatRequest,
    request: Request,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
):
    """
    Map a free-text request onto catalog/stock mutations

    Generation and decode failures come back as a friendly reply with 200;
    only catalog/ledger errors change the status code.
    """
    if not payload.message or not payload.message.strip():
        return JSONResponse(status_code=400, content={"reply": "Message is required"})
    if payload.user_id and payload.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your inventory")

    parser: IntentParser = request.app.state.parser
    dispatcher: IntentDispatcher = request.app.state.dispatcher
    if not parser.available:
        return JSONResponse(status_code=503, content={"reply": "AI service not configured"})

    intent = await parser.parse(payload.message, product_context=bool(payload.product_id))
    logger.info("Chat intent for user %s: %s", current_user.id, intent.kind)

    # Store round trips must not block the event loop
    try:
        result = await run_in_threadpool(
            dispatcher.dispatch, intent, current_user.id, payload.product_id
        )
    except RestockError as exc:
        return JSONResponse(status_code=error_status(exc), content={"reply": error_message(exc)})

    content = {"reply": result.reply}
    if result.catalog is not None:
        content["catalog"] = dump(result.catalog)
    if result.ledger is not None:
        content["ledger"] = dump(result.ledger)
    return content


# ==================== App Factory ====================

def create_app(config: Optional[Config] = None, llm_client=None) -> FastAPI:
    """
    Build the app and its collaborators once

    Args:
        config: Configuration; read from the environment if omitted
        llm_client: LangChain chat model; built from config if omitted
    """
    config = config or Config()
    if not config.JWT_SECRET:
        raise ValueError("JWT_SECRET environment variable is required")

    configure_logging(config.LOG_LEVEL)

    store = DocumentStore(config.DB_PATH)
    catalog = CatalogService(CatalogStore(store))
    stock = StockLedgerService(LedgerStore(store), catalog)
    if llm_client is None:
        llm_client = build_chat_model(config)

    app = FastAPI(title="Restocker Backend API", version="1.0.0")
    app.state.config = config
    app.state.user_store = UserStore(store)
    app.state.catalog = catalog
    app.state.stock = stock
    app.state.parser = IntentParser(llm_client, timeout=config.LLM_TIMEOUT_SECONDS)
    app.state.dispatcher = IntentDispatcher(catalog, stock)
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
    )

    @app.exception_handler(RestockError)
    async def restock_error_handler(request: Request, exc: RestockError):
        return JSONResponse(status_code=error_status(exc), content={"message": error_message(exc)})

    @app.get("/")
    def root():
        return {
            "message": "Restocker Backend API",
            "version": "1.0.0",
            "endpoints": {"health": "/health", "auth": "/auth", "chat": "/chat/ai"},
        }

    @app.get("/health")
    def health_check():
        return {
            "status": "OK",
            "message": "Server is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": time.monotonic() - app.state.started_at,
        }

    app.include_router(auth_router)
    app.include_router(chat)
    app.include_router(inventory)

    logger.info(
        "Restocker backend initialized (db=%s, ai=%s)",
        config.DB_PATH,
        "enabled" if app.state.parser.available else "disabled",
    )
    return app


# ==================== Development Server ====================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backend.restocker_api:create_app", factory=True, host="0.0.0.0", port=5000, log_level="info")
