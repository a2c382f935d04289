from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable

from returns.result import Result, Success

from storefront_api.bootstrap import UseCases
from storefront_api.core.domain.model.cart import AccountId, CartSnapshot, SessionId
from storefront_api.core.domain.model.errors import StorefrontError
from storefront_api.core.ports.inbound.cart import (
    AddToCartCommand,
    RemoveItemCommand,
    SetQuantityCommand,
)
from storefront_api.core.ports.inbound.checkout import (
    CheckoutCommand,
    GuestCheckoutReceipt,
    OrderReceipt,
)


@dataclass(frozen=True)
class Step:
    op: str
    args: dict[str, Any]


def run_cli(usecases: UseCases, raw: str) -> int:
    """
    raw: JSON string describing one shopper session.
    Example:
      {"session_id":"s-1",
       "steps":[{"op":"add","product_id":"phone-a1","delta":2},
                {"op":"sign_in","account_id":"acct-1"},
                {"op":"checkout","contact":"0971234567"}]}

    Ops: add, set, remove, show, sign_in, sign_out, checkout.
    """
    try:
        payload = json.loads(raw)
        session_id = SessionId(str(payload["session_id"]))
        steps = _parse_steps(payload)
    except (ValueError, KeyError, TypeError) as e:
        print(f"invalid_input: {e}")
        return 2

    failed = 0
    for step in steps:
        result = _run_step(usecases, session_id, step)
        if isinstance(result, Success):
            print(f"[ok] {step.op}", _render(result.unwrap()))
        else:
            failed += 1
            print(f"[ng] {step.op}", str(result.failure()))
    return 1 if failed else 0


def _parse_steps(payload: dict[str, Any]) -> list[Step]:
    steps = []
    for raw_step in payload.get("steps", []):
        args = dict(raw_step)
        op = str(args.pop("op"))
        if op not in _HANDLERS:
            raise ValueError(f"unknown op: {op}")
        steps.append(Step(op=op, args=args))
    return steps


def _run_step(
    usecases: UseCases, session_id: SessionId, step: Step
) -> Result[Any, StorefrontError]:
    return _HANDLERS[step.op](usecases, session_id, step.args)


def _add(uc: UseCases, sid: SessionId, args: dict[str, Any]):
    return uc.cart.add_to_cart(
        AddToCartCommand(
            cart_ref=uc.session.resolve_cart(sid),
            product_id=str(args.get("product_id", "")),
            delta=args.get("delta", 1),
        )
    )


def _set(uc: UseCases, sid: SessionId, args: dict[str, Any]):
    return uc.cart.update_quantity(
        SetQuantityCommand(
            cart_ref=uc.session.resolve_cart(sid),
            product_id=str(args.get("product_id", "")),
            quantity=args.get("quantity"),
        )
    )


def _remove(uc: UseCases, sid: SessionId, args: dict[str, Any]):
    return uc.cart.remove_from_cart(
        RemoveItemCommand(
            cart_ref=uc.session.resolve_cart(sid),
            product_id=str(args.get("product_id", "")),
        )
    )


def _show(uc: UseCases, sid: SessionId, _: dict[str, Any]):
    return uc.cart.get_cart_snapshot(uc.session.resolve_cart(sid))


def _sign_in(uc: UseCases, sid: SessionId, args: dict[str, Any]):
    uc.identity.sign_in(sid, AccountId(str(args.get("account_id", ""))))
    return uc.session.signed_in(sid).map(lambda view: str(view.cart_ref))


def _sign_out(uc: UseCases, sid: SessionId, _: dict[str, Any]):
    uc.identity.sign_out(sid)
    return Success(str(uc.session.resolve_cart(sid)))


def _checkout(uc: UseCases, sid: SessionId, args: dict[str, Any]):
    return uc.checkout.checkout(
        CheckoutCommand(
            cart_ref=uc.session.resolve_cart(sid),
            contact=str(args.get("contact", "")),
        )
    )


_HANDLERS: dict[str, Callable[[UseCases, SessionId, dict[str, Any]], Result[Any, StorefrontError]]] = {
    "add": _add,
    "set": _set,
    "remove": _remove,
    "show": _show,
    "sign_in": _sign_in,
    "sign_out": _sign_out,
    "checkout": _checkout,
}


def _render(value: Any) -> Any:
    if isinstance(value, CartSnapshot):
        return {
            "cart": str(value.cart_ref),
            "lines": {it.product_id.value: it.quantity for it in value.items},
            "stale": [p.value for p in value.stale_product_ids],
            "total": str(value.total.amount),
            "currency": value.total.currency,
        }
    if isinstance(value, OrderReceipt):
        return {
            "order_id": str(value.order_id.value),
            "account_id": value.account_id.value,
            "total": str(value.total.amount),
            "currency": value.total.currency,
        }
    if isinstance(value, GuestCheckoutReceipt):
        return {
            "session_id": value.session_id,
            "line_count": value.line_count,
            "total": str(value.total.amount),
            "currency": value.total.currency,
        }
    return value
