from __future__ import annotations

import hmac

from flask import abort, request

from storefront.config import Config


def is_admin_request() -> bool:
    token = request.headers.get(Config.ADMIN_TOKEN_HEADER, "")
    return bool(token) and hmac.compare_digest(token, Config.ADMIN_TOKEN)


def require_admin() -> None:
    if not is_admin_request():
        abort(403)
