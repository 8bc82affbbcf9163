"""
Cart → payment session → signed confirmation, against an in-process gateway.

Run: python -m examples.checkout_demo
"""

from kungfu import Error, Ok

from examples._infra import banner, run, seed_catalog
from shopcore.config import GatewaySettings
from shopcore.db import create_database
from shopcore.payments import InMemoryGateway, PaymentProof, checkout_signature
from shopcore.services import build_services

USER = 1
ADDRESS = 1


async def main() -> None:
    banner("Checkout with payment")

    session_factory, engine = await create_database()
    await seed_catalog(session_factory)

    settings = GatewaySettings(key_id="rzp_demo", key_secret="demo-secret", webhook_secret="demo-hook")
    gateway = InMemoryGateway()
    services = build_services(session_factory, gateway, settings)

    try:
        # 1. Fill the cart
        print("1. Cart:")
        await services.carts.add_item(USER, 1, 2)
        preview = (await services.carts.apply_coupon(USER, "SAVE10")).unwrap()
        print(f"   subtotal {preview.subtotal}, discount {preview.discount}, total {preview.total}\n")

        # 2. Open a gateway session (stock reserved, cart kept)
        print("2. Payment session:")
        session = (await services.payments.initiate_payment(USER, ADDRESS)).unwrap()
        print(f"   {session.gateway_order_id}: {session.amount_minor} {session.currency} minor units\n")

        # 3. A tampered proof is refused
        print("3. Tampered proof:")
        forged = PaymentProof(session.gateway_order_id, "pay_demo", "0" * 64)
        match await services.payments.confirm_payment(forged):
            case Ok(order):
                print(f"   unexpectedly accepted: {order.id}")
            case Error(e):
                print(f"   {e.kind}: {e.message}\n")

        # 4. The real proof settles the order, twice is harmless
        print("4. Signed proof (sent twice):")
        proof = PaymentProof(
            session.gateway_order_id,
            "pay_demo",
            checkout_signature(session.gateway_order_id, "pay_demo", settings.key_secret),
        )
        for _ in range(2):
            match await services.payments.confirm_payment(proof):
                case Ok(order):
                    print(f"   order {order.id}: {order.status}/{order.payment_status}, total {order.total}")
                case Error(e):
                    print(f"   {e.kind}: {e.message}")

        cart = (await services.carts.preview(USER)).unwrap()
        print(f"\nCart lines left: {len(cart.lines)}")

    finally:
        await engine.dispose()


if __name__ == "__main__":
    run(main)
