import base64
import logging
import time

import jwt
import requests

from feedme.utils.exceptions import (
    InvalidAddress,
    InvalidInput,
    ProviderUnavailable,
    UpstreamFailure,
)

logger = logging.getLogger(__name__)

TOKEN_AUDIENCE = "doordash"
TOKEN_VERSION = "DD-JWT-V1"


def _decode_secret(secret):
    padded = secret + "=" * (-len(secret) % 4)
    return base64.urlsafe_b64decode(padded)


class DeliveryClient:
    """Thin client for the delivery provider's quote/dispatch REST API.

    Every call is authenticated with a short-lived HS256 token generated
    from the developer id, key id and signing secret. Calls are keyed by the
    caller's ``external_delivery_id`` so repeating one never creates a second
    delivery.
    """

    def __init__(self, developer_id, key_id, signing_secret, base_url,
                 token_ttl=1800, timeout=10, http=None):
        self.developer_id = developer_id
        self.key_id = key_id
        self.signing_secret = signing_secret
        self.base_url = base_url.rstrip("/")
        self.token_ttl = token_ttl
        self.timeout = timeout
        self.http = http or requests.Session()

    @classmethod
    def from_config(cls, config):
        return cls(
            developer_id=config.get("DOORDASH_DEVELOPER_ID", ""),
            key_id=config.get("DOORDASH_KEY_ID", ""),
            signing_secret=config.get("DOORDASH_SIGNING_SECRET", ""),
            base_url=config.get("DOORDASH_BASE_URL", "https://openapi.doordash.com"),
            token_ttl=config.get("DOORDASH_TOKEN_TTL", 1800),
            timeout=config.get("DOORDASH_TIMEOUT", 10),
        )

    def is_configured(self):
        return bool(self.developer_id and self.key_id and self.signing_secret)

    def generate_token(self, now=None):
        if not self.is_configured():
            raise ProviderUnavailable("Delivery provider credentials are not configured")
        issued = int(now if now is not None else time.time())
        claims = {
            "aud": TOKEN_AUDIENCE,
            "iss": self.developer_id,
            "kid": self.key_id,
            "iat": issued,
            "exp": issued + self.token_ttl,
        }
        headers = {"dd-ver": TOKEN_VERSION, "kid": self.key_id}
        return jwt.encode(
            claims, _decode_secret(self.signing_secret), algorithm="HS256", headers=headers
        )

    def _request(self, method, path, payload=None):
        headers = {
            "Authorization": f"Bearer {self.generate_token()}",
            "Content-Type": "application/json",
        }
        url = f"{self.base_url}{path}"
        try:
            res = self.http.request(method, url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Delivery provider call %s %s failed: %s", method, path, e)
            raise ProviderUnavailable(f"Delivery provider unreachable: {e}")

        if res.status_code >= 500:
            raise ProviderUnavailable(
                f"Delivery provider error {res.status_code}", {"path": path}
            )

        try:
            body = res.json() if res.content else {}
        except ValueError:
            body = {}

        if res.status_code >= 400:
            message = body.get("message") or body.get("reason") or res.text or "Delivery provider rejected the request"
            details = {"status": res.status_code, "provider_code": body.get("code")}
            if res.status_code in (400, 422) and "address" in str(body).lower():
                raise InvalidAddress(message, details)
            err = UpstreamFailure(message, details)
            err.provider_status = res.status_code
            raise err
        return body

    def quote(self, pickup, dropoff, order_value, external_delivery_id):
        if not (pickup and dropoff):
            raise InvalidAddress("Pickup and dropoff addresses are required")
        body = self._request("POST", "/drive/v2/quotes", {
            "external_delivery_id": external_delivery_id,
            "pickup_address": pickup,
            "dropoff_address": dropoff,
            "order_value": int(order_value or 0),
            "currency": "USD",
        })
        return {
            "fee": body.get("fee"),
            "eta": body.get("dropoff_time_estimated"),
            "quote_id": body.get("external_delivery_id", external_delivery_id),
        }

    def create_delivery(self, payload):
        external_id = (payload or {}).get("external_delivery_id")
        if not external_id:
            raise InvalidInput("external_delivery_id is required")
        try:
            body = self._request("POST", "/drive/v2/deliveries", payload)
        except UpstreamFailure as e:
            if getattr(e, "provider_status", None) != 409:
                raise
            # already created under this external id
            logger.info("Delivery %s already exists, fetching it", external_id)
            body = self._request("GET", f"/drive/v2/deliveries/{external_id}")
        return {
            "delivery_id": body.get("external_delivery_id", external_id),
            "tracking_url": body.get("tracking_url"),
            "status": body.get("delivery_status"),
        }

    def get_status(self, delivery_id):
        body = self._request("GET", f"/drive/v2/deliveries/{delivery_id}")
        return {
            "status": body.get("delivery_status"),
            "tracking_url": body.get("tracking_url"),
            "pickup_time_estimated": body.get("pickup_time_estimated"),
            "dropoff_time_estimated": body.get("dropoff_time_estimated"),
        }

    def cancel(self, delivery_id):
        body = self._request("PUT", f"/drive/v2/deliveries/{delivery_id}/cancel")
        return {"cancelled": True, "status": body.get("delivery_status", "cancelled")}

    def get_merchant_menu(self, merchant_id):
        body = self._request("GET", f"/merchants/{merchant_id}/menu")
        return body.get("data", body)
