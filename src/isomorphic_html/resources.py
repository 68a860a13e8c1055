"""Serve the fake browser's resource requests from in-memory build assets."""

from __future__ import annotations

import logging
import mimetypes
from typing import Any, Callable, Mapping

import httpx

from .build import OutputConfig, Source, source_bytes

logger = logging.getLogger(__name__)

FetchResource = Callable[[str, Mapping[str, Any]], bytes]


class AssetNotFoundError(LookupError):
    """Raised when a requested URL does not map to any build asset."""

    def __init__(self, url: str, key: str) -> None:
        super().__init__(f"No asset '{key}' in the build (requested as '{url}')")
        self.url = url
        self.key = key


def remove_public_path(url: str, output: OutputConfig | None = None) -> str:
    public_path = output.public_path if output is not None else ""
    if not public_path or not url.startswith(public_path):
        return url
    return url[len(public_path):]


def fetch_resource(
    assets: Mapping[str, Source | str | bytes],
    output: OutputConfig | None,
    url: str,
    options: Mapping[str, Any] | None = None,
) -> bytes:
    """Return the bytes of the asset addressed by *url*.

    Only performs lookups in *assets*; never touches the network.
    """

    key = remove_public_path(url, output)
    try:
        asset = assets[key]
    except KeyError:
        raise AssetNotFoundError(url, key) from None
    logger.debug("serving %s from build asset %s", url, key)
    return source_bytes(asset)


class AssetTransport(httpx.BaseTransport):
    """httpx transport answering every request through a fetch function.

    Requests against *base_url*'s origin are looked up by path, so relative
    requests from a window behave like same-origin fetches. Any other URL is
    passed through whole, which lets absolute public paths such as
    ``https://cdn.example.com/static/`` match.
    """

    def __init__(self, fetch: FetchResource, base_url: str | httpx.URL | None = None) -> None:
        self._fetch = fetch
        self._origin = _origin(httpx.URL(base_url)) if base_url is not None else None

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        if _origin(request.url) == self._origin:
            url = request.url.path
        else:
            url = str(request.url)
        options = {"method": request.method, "headers": dict(request.headers)}
        content = self._fetch(url, options)
        content_type, _ = mimetypes.guess_type(request.url.path)
        headers = {"Content-Type": content_type or "application/octet-stream"}
        return httpx.Response(200, headers=headers, content=content, request=request)


def _origin(url: httpx.URL) -> tuple[str, str, int | None]:
    return url.scheme, url.host, url.port
