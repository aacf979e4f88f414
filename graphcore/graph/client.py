"""Authenticated HTTP client for Microsoft Graph."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Union

import requests

from graphcore.cli_errors import CLIError, GraphAPIError, NetworkError
from graphcore.constants import DEFAULT_REQUEST_TIMEOUT, GRAPH_API_URL

LOG = logging.getLogger(__name__)

DEFAULT_TIMEOUT = DEFAULT_REQUEST_TIMEOUT
GRAPH = GRAPH_API_URL

_DOWNLOAD_CHUNK = 64 * 1024


class _TimeoutRequestsWrapper:
    """Thin wrapper around ``requests`` that applies a default timeout."""

    def __init__(self, requests_mod, timeout):
        self._requests = requests_mod
        self._timeout = timeout

    def _call(self, method: str, *args, **kwargs):
        kwargs.setdefault("timeout", self._timeout)
        return getattr(self._requests, method)(*args, **kwargs)

    def get(self, *args, **kwargs):
        return self._call("get", *args, **kwargs)

    def post(self, *args, **kwargs):
        return self._call("post", *args, **kwargs)


def _requests():
    return _TimeoutRequestsWrapper(requests, DEFAULT_TIMEOUT)


class GraphClient:
    """Minimal Graph client: JSON in, JSON out.

    Paths are relative to ``base_url``; absolute URLs (such as an
    ``@odata.nextLink``) are used unchanged.
    """

    GRAPH = GRAPH

    def __init__(self, access_token: str, base_url: str = GRAPH):
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")

    def _make_url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self, with_json: bool = False) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }
        if with_json:
            headers["Content-Type"] = "application/json"
        return headers

    def _send(self, method: str, path: str, body: Any = None):
        url = self._make_url(path)
        LOG.debug("%s %s", method.upper(), url)
        kwargs: Dict[str, Any] = {"headers": self._headers(with_json=body is not None)}
        if body is not None:
            kwargs["json"] = body
        try:
            resp = getattr(_requests(), method.lower())(url, **kwargs)
        except requests.RequestException as exc:
            raise NetworkError(f"{method.upper()} {url} failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            LOG.debug("%s %s -> %s", method.upper(), url, resp.status_code)
            raise GraphAPIError(resp.status_code, resp.text)
        return resp

    @staticmethod
    def _decode(resp) -> Dict[str, Any]:
        if not resp.text:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise CLIError(f"Invalid JSON from Graph: {resp.text[:200]}") from exc

    def get(self, path: str) -> Dict[str, Any]:
        return self._decode(self._send("GET", path))

    def post(self, path: str, body: Any = None) -> Dict[str, Any]:
        return self._decode(self._send("POST", path, body if body is not None else {}))

    def get_me(self) -> Dict[str, Any]:
        return self.get("/me")

    def download(self, url: str, dest: Union[str, Path], *, authenticated: bool = False) -> int:
        """Stream ``url`` to ``dest``; returns bytes written.

        The bearer header is only sent when ``authenticated`` is set;
        pre-authenticated download URLs reject it.
        """
        target = self._make_url(url)
        LOG.debug("GET %s (download)", target)
        headers = self._headers() if authenticated else {}
        try:
            resp = _requests().get(target, headers=headers, stream=True)
        except requests.RequestException as exc:
            raise NetworkError(f"GET {target} failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            resp.close()
            raise GraphAPIError(resp.status_code, resp.text)
        dest_path = Path(dest)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        written = 0
        try:
            with dest_path.open("wb") as fh:
                for chunk in resp.iter_content(chunk_size=_DOWNLOAD_CHUNK):
                    if chunk:
                        fh.write(chunk)
                        written += len(chunk)
        except requests.RequestException as exc:
            dest_path.unlink(missing_ok=True)
            raise NetworkError(f"GET {target} failed after {written} bytes: {exc}") from exc
        finally:
            resp.close()
        return written

