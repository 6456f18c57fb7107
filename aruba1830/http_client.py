import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import requests

from .errors import AuthenticationError, HTTPError, InvalidResponseError, InvalidURLError, NetworkError
from .models import Session

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
DEFAULT_RESOURCE_TIMEOUT = 60

_CHUNK_SIZE = 8192


@dataclass
class HTTPResponse:
    """Fully read response, detached from the underlying connection."""

    url: str
    status_code: int
    headers: Dict[str, str]
    content: bytes
    cookies: Dict[str, str] = field(default_factory=dict)
    # Set-Cookie headers of redirect hops, oldest first
    history_set_cookies: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    @property
    def set_cookie(self) -> Optional[str]:
        return self.headers.get("Set-Cookie")


class ArubaHTTPClient:
    """
    Blocking HTTP transport for the switch web UI.

    Every call has a connect/read timeout (``timeout``) and an upper bound on
    the whole body download (``resource_timeout``). Nothing is retried.
    """

    def __init__(self, timeout: int = DEFAULT_TIMEOUT, resource_timeout: int = DEFAULT_RESOURCE_TIMEOUT):
        self.timeout = timeout
        self.resource_timeout = resource_timeout
        self.session = requests.Session()

    def fetch(self, url: str) -> HTTPResponse:
        """Unauthenticated GET following redirects; the status code is not checked."""
        return self._send("GET", url, headers={})

    def get(self, url: str, aruba_session: Session) -> bytes:
        headers = {
            "Cookie": aruba_session.cookie_header,
            "Accept": "*/*",
        }
        response = self._send("GET", url, headers=headers)
        self._validate(response)
        return response.content

    def post(self, url: str, aruba_session: Session, xml_body: str) -> bytes:
        headers = {
            "Cookie": aruba_session.cookie_header,
            "Content-Type": "application/x-www-form-urlencoded",
        }
        response = self._send("POST", url, headers=headers, data=xml_body.encode("utf-8"))
        self._validate(response)
        return response.content

    def _send(self, method: str, url: str, headers: Dict[str, str], data: Optional[bytes] = None) -> HTTPResponse:
        logger.debug("%s %s", method, _redact(url))
        try:
            resp = self.session.request(
                method,
                url,
                headers=headers,
                data=data,
                timeout=self.timeout,
                stream=True,
                allow_redirects=True,
            )
        except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema, requests.exceptions.InvalidSchema) as exc:
            raise InvalidURLError(_redact(url)) from exc
        except requests.RequestException as exc:
            raise NetworkError(str(exc)) from exc

        try:
            content = self._read_body(resp, url)
        finally:
            resp.close()

        return HTTPResponse(
            url=resp.url,
            status_code=resp.status_code,
            headers=dict(resp.headers),
            content=content,
            cookies=resp.cookies.get_dict(),
            history_set_cookies=[h.headers["Set-Cookie"] for h in resp.history if "Set-Cookie" in h.headers],
        )

    def _read_body(self, resp: requests.Response, url: str) -> bytes:
        deadline = time.monotonic() + self.resource_timeout
        chunks: List[bytes] = []
        try:
            for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                chunks.append(chunk)
                if time.monotonic() > deadline:
                    raise NetworkError(
                        f"Response from {_redact(url)} not completed within {self.resource_timeout}s"
                    )
        except (requests.exceptions.ChunkedEncodingError, requests.exceptions.ContentDecodingError) as exc:
            logger.debug("Unreadable body from %s: %s", _redact(url), exc)
            raise InvalidResponseError() from exc
        except requests.RequestException as exc:
            raise NetworkError(str(exc)) from exc
        return b"".join(chunks)

    @staticmethod
    def _validate(response: HTTPResponse) -> None:
        code = response.status_code
        if 200 <= code < 300:
            return
        if code == 401:
            raise AuthenticationError("Unauthorized")
        if code == 403:
            raise AuthenticationError("Forbidden")
        if code == 404:
            raise HTTPError(404, "Not Found")
        if 500 <= code < 600:
            raise HTTPError(code, "Server Error")
        raise HTTPError(code, "HTTP Error")


def _redact(url: str) -> str:
    """Hide the password query parameter of the login URL."""
    marker = "&password="
    start = url.find(marker)
    if start == -1:
        return url
    end = url.find("&", start + len(marker))
    return url[:start] + marker + "***" + (url[end:] if end != -1 else "")
