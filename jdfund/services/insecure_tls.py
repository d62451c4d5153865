"""Unverified TLS for the two price sources whose certificates cannot be checked.

Nothing else in the application should import from here.
"""

from __future__ import annotations

import ssl

import websockets


def unverified_ssl_context() -> ssl.SSLContext:
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def connect_insecure_feed(url: str, open_timeout_s: float = 10.0):
    options = {
        "ping_interval": 20,
        "ping_timeout": 20,
        "open_timeout": open_timeout_s,
    }
    if url.startswith("wss://"):
        options["ssl"] = unverified_ssl_context()
    return websockets.connect(url, **options)
