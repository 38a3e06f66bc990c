"""Request authentication for the client->API surface."""

import base64
import hashlib
import hmac
import time
from dataclasses import dataclass

from fastapi import HTTPException, Request, WebSocket, status

from core.config import settings


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, passed explicitly into every engine call."""

    uid: str


def _b64u_encode(data: bytes) -> str:
    """Base64-URL encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def sign_request(user_id: str, timestamp: int, method: str, path: str, body: bytes = b"") -> str:
    """
    Sign a request on behalf of a user.

    Args:
        user_id: Caller's user ID (sent in X-User-Id)
        timestamp: Unix time in seconds (sent in X-Timestamp)
        method: HTTP method; WebSocket handshakes sign as GET
        path: Request path without the query string
        body: Raw request body bytes

    Returns:
        Base64-URL encoded HMAC-SHA256 of "{user_id}:{timestamp}:{METHOD}:{path}:" + body
    """
    message = f"{user_id}:{timestamp}:{method.upper()}:{path}:".encode() + body
    mac = hmac.new(settings.internal_api_secret.encode(), message, hashlib.sha256).digest()
    return _b64u_encode(mac)


def is_fresh(timestamp: int, now: float | None = None) -> bool:
    """Whether a signed timestamp lies within the allowed clock skew."""
    now = time.time() if now is None else now
    return abs(now - timestamp) <= settings.auth_max_skew_seconds


def verify_signature(user_id: str, timestamp: int, method: str, path: str, body: bytes, signature: str) -> bool:
    """Verify the HMAC signature of a request and the freshness of its timestamp."""
    if not is_fresh(timestamp):
        return False
    return hmac.compare_digest(sign_request(user_id, timestamp, method, path, body), signature or "")


def _parse_timestamp(raw: str | None) -> int | None:
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


async def client_auth(request: Request) -> Identity:
    """
    Authenticate client->API requests using HMAC signature.

    Expects headers:
    - X-User-Id: ID of the user making the request
    - X-Timestamp: Unix time in seconds when the request was signed
    - X-Signature: HMAC-SHA256 signature of user id, timestamp, method, path and body

    Raises:
        HTTPException: If authentication fails
    """
    user_id = request.headers.get("X-User-Id")
    signature = request.headers.get("X-Signature")
    timestamp = _parse_timestamp(request.headers.get("X-Timestamp"))

    if not user_id or not signature or timestamp is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing auth headers (X-User-Id, X-Timestamp, X-Signature)",
        )

    body = await request.body()

    if not verify_signature(user_id, timestamp, request.method, request.url.path, body, signature):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired signature")

    return Identity(uid=user_id)


async def websocket_auth(websocket: WebSocket) -> Identity | None:
    """
    Authenticate a WebSocket handshake.

    Credentials come from the same headers as HTTP calls or, for clients that
    cannot set handshake headers, the query parameters user_id, ts and signature.
    The handshake signs as GET on the socket path with an empty body.
    """
    params = websocket.query_params
    user_id = websocket.headers.get("X-User-Id") or params.get("user_id")
    signature = websocket.headers.get("X-Signature") or params.get("signature")
    timestamp = _parse_timestamp(websocket.headers.get("X-Timestamp") or params.get("ts"))

    if not user_id or not signature or timestamp is None:
        return None
    if not verify_signature(user_id, timestamp, "GET", websocket.url.path, b"", signature):
        return None
    return Identity(uid=user_id)
