from collections.abc import Generator
from dataclasses import dataclass
import hmac
import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from hrms.core.config import Settings, get_settings
from hrms.core.exceptions import ConfigurationError
from hrms.core.signing import timestamp_within_window, verify_signature
from hrms.db.session import SessionLocal
from hrms.services.rate_limit import enforce_rate_limit

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@dataclass(frozen=True)
class InboundCaller:
    system: str
    body: bytes


async def verify_signed_request(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    settings: Settings = Depends(get_settings),
) -> InboundCaller:
    """Authenticates a SIS/LMS call: bearer API key, fresh timestamp, HMAC of body + timestamp."""
    enforce_rate_limit(
        request=request,
        scope="xr",
        limit=settings.inbound_rate_limit_max_requests,
        window_seconds=settings.inbound_rate_limit_window_seconds,
        trusted_proxy_header=settings.trusted_proxy_header,
    )

    api_key = credentials.credentials if credentials is not None else ""
    system = next(
        (
            name
            for name, key in settings.inbound_api_keys.items()
            if hmac.compare_digest(key.encode("utf-8"), api_key.encode("utf-8"))
        ),
        None,
    )
    if not api_key or system is None:
        logger.warning("Rejected inbound call to %s: unknown API key", request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )

    timestamp = request.headers.get("x-timestamp")
    signature = request.headers.get("x-signature")
    if not timestamp or not signature or not timestamp_within_window(timestamp, settings.signature_max_skew_seconds):
        logger.warning("Rejected inbound %s call: missing or stale timestamp", system)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid request timestamp or signature")
    if not settings.sis_shared_secret:
        raise ConfigurationError("Inbound signature verification requires sis_shared_secret")

    body = await request.body()
    if not verify_signature(
        secret=settings.sis_shared_secret,
        body=body.decode("utf-8", errors="replace"),
        timestamp=timestamp,
        signature=signature,
        max_skew_seconds=settings.signature_max_skew_seconds,
    ):
        logger.warning("Rejected inbound %s call: bad signature", system)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid signature")
    return InboundCaller(system=system, body=body)
