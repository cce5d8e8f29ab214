import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request

from . import config


def keys_match(presented: Optional[str], expected: str) -> bool:
    # an unset key never matches
    if not expected or not presented:
        return False
    return secrets.compare_digest(presented.encode(), expected.encode())


def require_admin(x_admin_key: Optional[str] = Header(default=None)):
    if not keys_match(x_admin_key, config.ADMIN_KEY):
        raise HTTPException(status_code=401, detail="Unauthorized")


def require_api_key(x_api_key: Optional[str] = Header(default=None)):
    if not keys_match(x_api_key, config.API_KEY):
        raise HTTPException(status_code=401, detail="Unauthorized")


def client_ip(request: Request) -> Optional[str]:
    cf_ip = request.headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip.strip()
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
