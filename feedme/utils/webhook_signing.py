"""Signing and verification helpers for inbound provider webhooks.

Three schemes are in use:

* payment provider: ``Stripe-Signature: t=<ts>,v1=<hex>`` where the digest is
  HMAC-SHA256 over ``"<ts>." + body``;
* identity provider (svix): ``svix-signature: v1,<base64> [v1,<base64> ...]``
  where the digest is HMAC-SHA256 over ``"<id>.<ts>." + body`` keyed with the
  base64 part of a ``whsec_`` secret;
* delivery provider: hex HMAC-SHA256 of the raw body.
"""

import base64
import hashlib
import hmac
import time

from feedme.utils.exceptions import InvalidSignature


def _hmac_hex(secret: bytes, msg: bytes) -> str:
    return hmac.new(secret, msg, hashlib.sha256).hexdigest()


def sign_stripe(secret: str, timestamp: int, body: bytes) -> str:
    digest = _hmac_hex(secret.encode(), f"{timestamp}.".encode() + body)
    return f"t={timestamp},v1={digest}"


def verify_stripe(secret: str, body: bytes, header: str, tolerance: int = 300, now=None) -> None:
    if not header:
        raise InvalidSignature("No signature")
    if not secret:
        raise InvalidSignature("Webhook secret is not configured")

    timestamp = None
    signatures = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)

    if not timestamp or not signatures:
        raise InvalidSignature("Malformed signature header")
    try:
        ts = int(timestamp)
    except ValueError:
        raise InvalidSignature("Malformed signature header")

    now = int(now if now is not None else time.time())
    if tolerance and abs(now - ts) > tolerance:
        raise InvalidSignature("Signature timestamp outside tolerance")

    expected = _hmac_hex(secret.encode(), f"{ts}.".encode() + body)
    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise InvalidSignature()


def _svix_key(secret: str) -> bytes:
    if secret.startswith("whsec_"):
        secret = secret[len("whsec_"):]
    return base64.b64decode(secret)


def sign_svix(secret: str, msg_id: str, timestamp: int, body: bytes) -> str:
    to_sign = f"{msg_id}.{timestamp}.".encode() + body
    digest = hmac.new(_svix_key(secret), to_sign, hashlib.sha256).digest()
    return "v1," + base64.b64encode(digest).decode()


def verify_svix(secret: str, body: bytes, msg_id: str, timestamp: str, header: str,
                tolerance: int = 300, now=None) -> None:
    if not (msg_id and timestamp and header):
        raise InvalidSignature("Missing svix headers")
    if not secret:
        raise InvalidSignature("Webhook secret is not configured")
    try:
        ts = int(timestamp)
    except ValueError:
        raise InvalidSignature("Malformed svix timestamp")

    now = int(now if now is not None else time.time())
    if tolerance and abs(now - ts) > tolerance:
        raise InvalidSignature("Signature timestamp outside tolerance")

    expected = sign_svix(secret, msg_id, ts, body).split(",", 1)[1]
    for entry in header.split():
        version, _, sig = entry.partition(",")
        if version == "v1" and hmac.compare_digest(expected, sig):
            return
    raise InvalidSignature()


def sign_body(secret: str, body: bytes) -> str:
    return _hmac_hex(secret.encode(), body)


def verify_body(secret: str, body: bytes, header: str) -> None:
    if not header:
        raise InvalidSignature("No signature")
    if not secret:
        raise InvalidSignature("Webhook secret is not configured")
    if not hmac.compare_digest(sign_body(secret, body), header.strip()):
        raise InvalidSignature()
