from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from jdfund.core.errors import TransportError, UnsupportedMethodError, UnsupportedResponseError
from jdfund.core.models import FetchResponse

SUPPORTED_METHODS = frozenset({"GET", "POST"})


class InsecureHttpFetcher:
    """One-shot requests to sources with unverifiable certificates.

    Certificate and hostname checks are off for this client only. Errors are
    raised to the caller and never retried here.
    """

    def __init__(
        self,
        timeout_s: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout_s),
            verify=False,
            transport=transport,
            follow_redirects=True,
        )
        self._closed = False
        self._logger = logging.getLogger("jdfund")

    def fetch(self, url: str, method: str = "GET", body: Any = None) -> FetchResponse:
        method_upper = str(method).upper()
        if method_upper not in SUPPORTED_METHODS:
            raise UnsupportedMethodError(method)
        request_kwargs: dict[str, Any] = {}
        if method_upper == "POST" and body is not None:
            if isinstance(body, (dict, list)):
                request_kwargs["content"] = json.dumps(body, ensure_ascii=False).encode("utf-8")
            elif isinstance(body, (bytes, str)):
                request_kwargs["content"] = body
            else:
                raise TypeError(f"unsupported body type: {type(body).__name__}")
            request_kwargs["headers"] = {"Content-Type": "application/json"}
        try:
            response = self._client.request(method_upper, url, **request_kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            self._logger.warning("[HTTP] %s %s failed: %s", method_upper, url, exc)
            raise TransportError(f"{method_upper} {url}: {exc}") from exc
        return FetchResponse(status_code=response.status_code, text=_decode_body(response))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._client.close()


def _decode_body(response: httpx.Response) -> str:
    encoding = response.charset_encoding or "utf-8"
    try:
        return response.content.decode(encoding)
    except (LookupError, UnicodeDecodeError) as exc:
        raise UnsupportedResponseError(
            f"cannot decode body as {encoding}: {exc}"
        ) from exc
