from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from returns.result import Success

from storefront_api.bootstrap import UseCases
from storefront_api.core.domain.model.cart import AccountId, CartSnapshot, SessionId
from storefront_api.core.domain.model.catalog import ProductFilter
from storefront_api.core.domain.model.errors import (
    CartChangedError,
    CheckoutInProgress,
    MergeConflictError,
    OrderNotFound,
    PaymentDeclined,
    PersistenceError,
    ProductNotFound,
    StockConflictError,
    StorefrontError,
    ValidationError,
)
from storefront_api.core.ports.inbound.cart import (
    AddToCartCommand,
    RemoveItemCommand,
    SetQuantityCommand,
)
from storefront_api.core.ports.inbound.checkout import CheckoutCommand, OrderReceipt
from storefront_api.core.ports.inbound.get_order import GetOrderQuery
from storefront_api.core.ports.inbound.list_orders import ListOrdersQuery
from storefront_api.core.ports.inbound.session import SessionView
from storefront_api.utils.logging import bind_context, clear_context, get_logger

logger = get_logger(__name__)

# ---- HTTP DTOs (adapter layer) ---------------------------------------------


class AddItemRequest(BaseModel):
    product_id: str = Field(min_length=1, examples=["phone-a1"])
    delta: int = Field(1, examples=[1])


class SetQuantityRequest(BaseModel):
    quantity: int = Field(examples=[3])


class SignInRequest(BaseModel):
    account_id: str = Field(min_length=1, examples=["acct-1"])


class CheckoutRequest(BaseModel):
    contact: str = Field(examples=["+260 97 123 4567"])


class ProductOut(BaseModel):
    product_id: str
    name: str
    unit_price: str
    stock_quantity: int
    category: str


class CartItemOut(BaseModel):
    product_id: str
    name: str
    quantity: int
    unit_price: str
    subtotal: str


class CartResponse(BaseModel):
    cart: str
    version: int
    items: list[CartItemOut]
    stale_product_ids: list[str]
    total: str
    currency: str


class SessionResponse(BaseModel):
    session_id: str
    account_id: str | None
    is_admin: bool
    cart: str


class OrderLineOut(BaseModel):
    product_id: str
    name: str
    unit_price: str
    quantity: int
    subtotal: str


class CheckoutResponse(BaseModel):
    kind: str  # order | guest
    total: str
    currency: str
    order_id: str | None = None
    account_id: str | None = None
    session_id: str | None = None
    lines: list[OrderLineOut] = []


class OrderDetailsResponse(BaseModel):
    order_id: str
    account_id: str
    status: str
    total: str
    currency: str
    lines: list[OrderLineOut]


class OrderSummaryOut(BaseModel):
    order_id: str
    account_id: str
    total: str
    currency: str
    line_count: int


class OrderListResponse(BaseModel):
    offset: int
    limit: int
    items: list[OrderSummaryOut]


class ErrorResponse(BaseModel):
    type: str
    message: str
    details: list[dict[str, Any]] | None = None


def _map_error_to_http(err: StorefrontError) -> tuple[int, ErrorResponse]:
    body = ErrorResponse(type=type(err).__name__, message=str(err))

    if isinstance(err, ValidationError):
        return 400, body

    if isinstance(err, (ProductNotFound, OrderNotFound)):
        return 404, body

    if isinstance(
        err, (StockConflictError, MergeConflictError, CheckoutInProgress, CartChangedError)
    ):
        return 409, body

    if isinstance(err, PaymentDeclined):
        return 402, body

    if isinstance(err, PersistenceError):
        return 500, body

    return 500, body


def _cart_response(snapshot: CartSnapshot) -> CartResponse:
    return CartResponse(
        cart=str(snapshot.cart_ref),
        version=snapshot.version,
        items=[
            CartItemOut(
                product_id=it.product_id.value,
                name=it.name,
                quantity=it.quantity,
                unit_price=str(it.unit_price.amount),
                subtotal=str(it.subtotal.amount),
            )
            for it in snapshot.items
        ],
        stale_product_ids=[p.value for p in snapshot.stale_product_ids],
        total=str(snapshot.total.amount),
        currency=snapshot.total.currency,
    )


def _session_response(view: SessionView) -> SessionResponse:
    return SessionResponse(
        session_id=view.session_id.value,
        account_id=view.account_id.value if view.account_id else None,
        is_admin=view.is_admin,
        cart=str(view.cart_ref),
    )


_ERRORS = {
    400: {"model": ErrorResponse},
    402: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def create_app(usecases: UseCases) -> FastAPI:
    app = FastAPI(title="storefront_api")

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        clear_context()
        bind_context(method=request.method, path=request.url.path)
        return await call_next(request)

    # --- exception handlers ---------------------------------------------------

    @app.exception_handler(StorefrontError)
    async def handle_domain_error(_: Request, exc: StorefrontError) -> JSONResponse:
        status, body = _map_error_to_http(exc)
        logger.info("http.domain_error", status=status, error=body.type)
        return JSONResponse(status_code=status, content=body.model_dump())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        _: Request, exc: RequestValidationError
    ) -> JSONResponse:
        body = ErrorResponse(
            type="RequestValidationError",
            message="invalid request",
            details=[{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()],
        )
        return JSONResponse(status_code=400, content=body.model_dump())

    @app.exception_handler(Exception)
    async def handle_unexpected(_: Request, exc: Exception) -> JSONResponse:
        logger.exception("http.unexpected_error")
        body = ErrorResponse(type=type(exc).__name__, message="internal server error")
        return JSONResponse(status_code=500, content=body.model_dump())

    # --- routes ----------------------------------------------------------------

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/products", response_model=list[ProductOut])
    def list_products(category: str | None = Query(None)) -> Any:
        result = usecases.catalog.list_products(ProductFilter(category=category))
        if isinstance(result, Success):
            return [
                ProductOut(
                    product_id=p.product_id.value,
                    name=p.name,
                    unit_price=str(p.unit_price),
                    stock_quantity=p.stock_quantity,
                    category=p.category,
                )
                for p in result.unwrap()
            ]
        raise result.failure()

    # sessions

    @app.get("/sessions/{session_id}", response_model=SessionResponse)
    def describe_session(session_id: str) -> Any:
        return _session_response(usecases.session.describe(SessionId(session_id)))

    @app.post("/sessions/{session_id}/sign-in", response_model=SessionResponse, responses=_ERRORS)
    def sign_in(session_id: str, req: SignInRequest) -> Any:
        sid = SessionId(session_id)
        usecases.identity.sign_in(sid, AccountId(req.account_id))
        result = usecases.session.signed_in(sid)
        if isinstance(result, Success):
            return _session_response(result.unwrap())
        raise result.failure()

    @app.post("/sessions/{session_id}/sign-out", response_model=SessionResponse)
    def sign_out(session_id: str) -> Any:
        sid = SessionId(session_id)
        usecases.identity.sign_out(sid)
        return _session_response(usecases.session.describe(sid))

    # cart

    @app.get("/cart/{session_id}", response_model=CartResponse, responses=_ERRORS)
    def get_cart(session_id: str) -> Any:
        cart_ref = usecases.session.resolve_cart(SessionId(session_id))
        result = usecases.cart.get_cart_snapshot(cart_ref)
        if isinstance(result, Success):
            return _cart_response(result.unwrap())
        raise result.failure()

    @app.post("/cart/{session_id}/items", response_model=CartResponse, responses=_ERRORS)
    def add_item(session_id: str, req: AddItemRequest) -> Any:
        cart_ref = usecases.session.resolve_cart(SessionId(session_id))
        result = usecases.cart.add_to_cart(
            AddToCartCommand(cart_ref=cart_ref, product_id=req.product_id, delta=req.delta)
        )
        if isinstance(result, Success):
            return _cart_response(result.unwrap())
        raise result.failure()

    @app.put(
        "/cart/{session_id}/items/{product_id}",
        response_model=CartResponse,
        responses=_ERRORS,
    )
    def set_quantity(session_id: str, product_id: str, req: SetQuantityRequest) -> Any:
        cart_ref = usecases.session.resolve_cart(SessionId(session_id))
        result = usecases.cart.update_quantity(
            SetQuantityCommand(cart_ref=cart_ref, product_id=product_id, quantity=req.quantity)
        )
        if isinstance(result, Success):
            return _cart_response(result.unwrap())
        raise result.failure()

    @app.delete(
        "/cart/{session_id}/items/{product_id}",
        response_model=CartResponse,
        responses=_ERRORS,
    )
    def remove_item(session_id: str, product_id: str) -> Any:
        cart_ref = usecases.session.resolve_cart(SessionId(session_id))
        result = usecases.cart.remove_from_cart(
            RemoveItemCommand(cart_ref=cart_ref, product_id=product_id)
        )
        if isinstance(result, Success):
            return _cart_response(result.unwrap())
        raise result.failure()

    @app.post(
        "/cart/{session_id}/checkout",
        response_model=CheckoutResponse,
        status_code=201,
        responses=_ERRORS,
    )
    def checkout(session_id: str, req: CheckoutRequest, response: Response) -> Any:
        cart_ref = usecases.session.resolve_cart(SessionId(session_id))
        result = usecases.checkout.checkout(
            CheckoutCommand(cart_ref=cart_ref, contact=req.contact)
        )
        if not isinstance(result, Success):
            raise result.failure()

        receipt = result.unwrap()
        if isinstance(receipt, OrderReceipt):
            order_id = str(receipt.order_id.value)
            response.headers["Location"] = f"/orders/{order_id}"
            return CheckoutResponse(
                kind="order",
                total=str(receipt.total.amount),
                currency=receipt.total.currency,
                order_id=order_id,
                account_id=receipt.account_id.value,
                lines=[
                    OrderLineOut(
                        product_id=ln.product_id.value,
                        name=ln.name,
                        unit_price=str(ln.unit_price_at_purchase.amount),
                        quantity=ln.quantity,
                        subtotal=str(ln.subtotal().amount),
                    )
                    for ln in receipt.lines
                ],
            )
        return CheckoutResponse(
            kind="guest",
            total=str(receipt.total.amount),
            currency=receipt.total.currency,
            session_id=receipt.session_id,
        )

    # orders

    @app.get("/orders", response_model=OrderListResponse, responses=_ERRORS)
    def list_orders(
        offset: int = Query(0, ge=0),
        limit: int = Query(50, ge=1, le=100),
        account_id: str | None = Query(None, min_length=1),
        sort_by: str = Query("created_at"),
        sort_dir: str = Query("desc"),
    ) -> Any:
        result = usecases.list_orders.list_orders(
            ListOrdersQuery(
                offset=offset,
                limit=limit,
                account_id=account_id,
                sort_by=sort_by,
                sort_dir=sort_dir,
            )
        )

        if isinstance(result, Success):
            return OrderListResponse(
                offset=offset,
                limit=limit,
                items=[
                    OrderSummaryOut(
                        order_id=str(v.order_id.value),
                        account_id=v.account_id.value,
                        total=str(v.total.amount),
                        currency=v.total.currency,
                        line_count=v.line_count,
                    )
                    for v in result.unwrap()
                ],
            )

        raise result.failure()

    @app.get("/orders/{order_id}", response_model=OrderDetailsResponse, responses=_ERRORS)
    def get_order(order_id: str) -> Any:
        result = usecases.get_order.get_order(GetOrderQuery(order_id=order_id))

        if isinstance(result, Success):
            view = result.unwrap()
            return OrderDetailsResponse(
                order_id=str(view.order_id.value),
                account_id=view.account_id.value,
                status=view.status,
                total=str(view.total.amount),
                currency=view.total.currency,
                lines=[
                    OrderLineOut(
                        product_id=ln.product_id,
                        name=ln.name,
                        unit_price=str(ln.unit_price.amount),
                        quantity=ln.quantity,
                        subtotal=str(ln.subtotal.amount),
                    )
                    for ln in view.lines
                ],
            )

        raise result.failure()

    return app
