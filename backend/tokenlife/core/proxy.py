"""WSGI proxy middleware configuration helper."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Apply :class:`werkzeug.middleware.proxy_fix.ProxyFix` when enabled.

    Refresh records store the caller's source address, so ``request.remote_addr``
    must reflect the client rather than the load balancer.

    Notes
    -----
    Controlled by ``USE_PROXYFIX`` (default ``True``) and ``PROXY_HOPS``
    (default ``1``), the number of trusted proxies in front of the app.
    """
    if not app.config.get("USE_PROXYFIX", True):
        return
    hops = int(app.config.get("PROXY_HOPS", 1))
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops, x_prefix=hops)
