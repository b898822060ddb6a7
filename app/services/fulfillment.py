import logging
from typing import Optional
import requests
from sqlmodel import Session
from app.core.config import settings
from app.core.errors import InvalidStatusTransition
from app.models.design import Design
from app.models.order import Order, OrderStatus
from app.models.product import ProductType
from app.services.catalog import parse_config
from app.services.order import OrderService

logger = logging.getLogger(__name__)


class FulfillmentError(Exception):
    pass


class PrintifyClient:
    """Submits orders to the Printify REST API."""

    def __init__(self, api_token: str, shop_id: str, base_url: str = None, http: requests.Session = None):
        self.shop_id = shop_id
        self.base_url = (base_url or settings.PRINTIFY_BASE_URL).rstrip("/")
        self.http = http or requests.Session()
        self.http.headers.update({"Authorization": f"Bearer {api_token}"})

    def submit_order(self, order: Order, design: Design, product_type: ProductType) -> str:
        config = parse_config(product_type.options)
        variant_id = config.variant_id_for(order.size, order.frame_color)
        if variant_id is None:
            raise FulfillmentError(f"No Printify variant for {order.size}/{order.frame_color}")

        address = order.shipping_address or {}
        payload = {
            "external_id": f"order-{order.id}",
            "line_items": [{
                "blueprint_id": product_type.printify_blueprint_id,
                "print_provider_id": product_type.printify_provider_id,
                "variant_id": variant_id,
                "quantity": order.quantity,
                "print_areas": {"front": design.generated_image_url},
            }],
            "shipping_method": 1,
            "send_shipping_notification": True,
            "address_to": {
                "first_name": address.get("first_name") or address.get("full_name", ""),
                "last_name": address.get("last_name", ""),
                "email": address.get("email", ""),
                "phone": address.get("phone", ""),
                "country": address.get("country", "US"),
                "region": address.get("state", ""),
                "address1": address.get("address", ""),
                "city": address.get("city", ""),
                "zip": address.get("zip", ""),
            },
        }
        try:
            response = self.http.post(f"{self.base_url}/shops/{self.shop_id}/orders.json", json=payload, timeout=30)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FulfillmentError(str(exc)) from exc
        return str(response.json()["id"])


def get_fulfillment_client() -> Optional[PrintifyClient]:
    if not settings.fulfillment_enabled:
        return None
    return PrintifyClient(settings.PRINTIFY_API_TOKEN, settings.PRINTIFY_SHOP_ID)


def submit_order_for_fulfillment(order_id: int, bind, client: Optional[PrintifyClient]):
    """Background task: push a pending order to the print provider.

    Runs after the response with its own session. Failures are logged and the
    order stays pending for a retry from the admin side.
    """
    if client is None:
        logger.info("Fulfillment disabled, order %s stays pending", order_id)
        return

    with Session(bind) as session:
        order = session.get(Order, order_id)
        if not order or order.status != OrderStatus.PENDING:
            return
        design = session.get(Design, order.design_id)
        product_type = session.get(ProductType, design.product_type_id) if design else None
        if not design or not product_type:
            logger.error("Order %s has no printable design", order_id)
            return
        try:
            printify_order_id = client.submit_order(order, design, product_type)
        except FulfillmentError as exc:
            logger.error("Failed to submit order %s to Printify: %s", order_id, exc)
            return

        try:
            OrderService(session).update_status(order_id, OrderStatus.PROCESSING, printify_order_id=printify_order_id)
        except InvalidStatusTransition as exc:
            # Cancelled while the submission was in flight
            logger.error("Order %s submitted as %s but not updated: %s", order_id, printify_order_id, exc.detail)
            return
        logger.info("Order %s submitted to Printify as %s", order_id, printify_order_id)
