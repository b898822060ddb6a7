"""HTTP client for the print studio API.

The bearer token is never read from shared state: callers pass a
``token_provider`` (for an embedded Shopify app, a function that asks App
Bridge for a fresh session token) and optionally an ``on_unauthorized``
hook that re-authenticates when the server answers 401.
"""
from typing import Any, Callable, Dict, Optional
import requests


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class SessionExpired(ApiError):
    pass


class PrintStudioClient:
    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], Optional[str]],
        http=None,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.http = http or requests.Session()
        self.on_unauthorized = on_unauthorized

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(self, method: str, path: str, json: Any = None, params: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        response = self.http.request(method, url, headers=self._headers(), json=json, params=params)

        if response.status_code == 401 and self.on_unauthorized is not None:
            # Re-authenticate once, then retry with a fresh token
            self.on_unauthorized()
            response = self.http.request(method, url, headers=self._headers(), json=json, params=params)

        if response.status_code == 401:
            raise SessionExpired(401, _error_message(response))
        if response.status_code >= 400:
            raise ApiError(response.status_code, _error_message(response))
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # Customer & credits

    def get_customer(self) -> dict:
        return self.request("GET", "/api/customer")

    def purchase_credits(self, package: str = "5") -> dict:
        return self.request("POST", "/api/credits/purchase", json={"package": package})

    def redeem_coupon(self, code: str) -> dict:
        return self.request("POST", "/api/coupons/redeem", json={"code": code})

    # Designs

    def generate_design(self, prompt: str, size: str, product_type_id: int, frame_color: Optional[str] = None,
                        style_preset: Optional[str] = None, reference_image_base64: Optional[str] = None) -> dict:
        return self.request("POST", "/api/designs/generate", json={
            "prompt": prompt,
            "size": size,
            "productTypeId": product_type_id,
            "frameColor": frame_color,
            "stylePreset": style_preset,
            "referenceImageBase64": reference_image_base64,
        })

    def list_designs(self, page: int = 1, limit: Optional[int] = None) -> dict:
        params = {"page": page}
        if limit:
            params["limit"] = limit
        return self.request("GET", "/api/designs", params=params)

    def delete_design(self, design_id: int) -> None:
        self.request("DELETE", f"/api/designs/{design_id}")

    # Orders

    def list_orders(self) -> list:
        return self.request("GET", "/api/orders")

    def place_order(self, design_id: int, size: Optional[str] = None, frame_color: Optional[str] = None,
                    quantity: int = 1, shipping_address: Optional[dict] = None) -> dict:
        return self.request("POST", "/api/orders", json={
            "designId": design_id,
            "size": size,
            "frameColor": frame_color,
            "quantity": quantity,
            "shippingAddress": shipping_address,
        })


def _error_message(response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or "Request failed"
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error")
        if isinstance(detail, str):
            return detail
        if detail is not None:
            return str(detail)
    return "Request failed"
