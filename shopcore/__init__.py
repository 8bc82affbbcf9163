"""
Shopcore — cart pricing, checkout and payment reconciliation.

Modules:
    pricing   — pure subtotal/discount/total arithmetic
    cart      — the user's basket with live previews
    checkout  — cart → order in one transaction
    orders    — order history, cancellation, fulfilment steps
    payments  — gateway sessions, proofs, webhooks, expiry
    saga      — compensating multi-step workflows
    db        — SQLAlchemy tables and repositories
    api       — FastAPI application factory

Every public service operation returns ``LazyCoroResult[T, ShopError]``:

    from kungfu import Ok, Error

    match await services.checkout.place_order(user_id, address_id):
        case Ok(order):
            ...
        case Error(e):
            e.kind, e.message
"""

__version__ = "0.1.0"
