"""
Session establishment for the switch web UI.

The switch has no login API. A session is scraped out of what the web UI
does for a browser:

1. ``GET http://{host}/`` redirects to ``/{token}/hpe/config/log_off_page.htm``;
   the token is the path segment in front of ``/hpe/``.
2. ``GET /{token}/htdocs/login/system.xml?action=login&user=..&password=..``
   answers with ``Set-Cookie: sessionID=...``.

Token and cookie are each extracted by an ordered list of strategies; the
first one returning a value wins. New firmware layouts only need a new
strategy appended to the list.
"""
import logging
import re
from typing import Callable, List, Optional
from urllib.parse import quote

from .errors import AuthenticationError, InvalidCredentialsError
from .http_client import ArubaHTTPClient, HTTPResponse
from .models import Session

logger = logging.getLogger(__name__)

TokenStrategy = Callable[[HTTPResponse, str], Optional[str]]
CookieStrategy = Callable[[HTTPResponse], Optional[str]]

_TOKEN_IN_URL_RE = re.compile(r"://[^/]+/([a-z0-9]{8,12})/hpe/", re.IGNORECASE)
_TOKEN_IN_PATH_RE = re.compile(r"/([a-z0-9]{8,12})/hpe/", re.IGNORECASE)
_SESSION_ID_RE = re.compile(r"sessionID=([^;,\s]+)")

SESSION_COOKIE_NAME = "sessionID"


# --- token strategies ----------------------------------------------------------

def token_from_final_url(response: HTTPResponse, host: str) -> Optional[str]:
    """http://10.0.0.1/cs2d4faf80/hpe/config/log_off_page.htm -> cs2d4faf80"""
    m = _TOKEN_IN_URL_RE.search(response.url or "")
    return m.group(1) if m else None


def token_from_absolute_link(response: HTTPResponse, host: str) -> Optional[str]:
    """Absolute ``http://{host}/{token}/hpe/`` link anywhere in the page."""
    m = re.search(rf"http://{re.escape(host)}/([^/\"'\s]+)/hpe/", response.text)
    return m.group(1) if m else None


def token_from_relative_path(response: HTTPResponse, host: str) -> Optional[str]:
    m = _TOKEN_IN_PATH_RE.search(response.text)
    return m.group(1) if m else None


TOKEN_STRATEGIES: List[TokenStrategy] = [
    token_from_final_url,
    token_from_absolute_link,
    token_from_relative_path,
]


# --- cookie strategies ---------------------------------------------------------

def cookie_from_set_cookie_header(response: HTTPResponse) -> Optional[str]:
    m = _SESSION_ID_RE.search(response.set_cookie or "")
    return m.group(1) if m else None


def cookie_from_redirect_hops(response: HTTPResponse) -> Optional[str]:
    for header in reversed(response.history_set_cookies):
        m = _SESSION_ID_RE.search(header)
        if m:
            return m.group(1)
    return None


def cookie_from_cookie_jar(response: HTTPResponse) -> Optional[str]:
    return response.cookies.get(SESSION_COOKIE_NAME) or None


COOKIE_STRATEGIES: List[CookieStrategy] = [
    cookie_from_set_cookie_header,
    cookie_from_redirect_hops,
    cookie_from_cookie_jar,
]


def extract_session_token(
    response: HTTPResponse, host: str, strategies: Optional[List[TokenStrategy]] = None
) -> Optional[str]:
    for strategy in strategies or TOKEN_STRATEGIES:
        token = strategy(response, host)
        if token:
            logger.debug("Session token found by %s", strategy.__name__)
            return token
    return None


def extract_session_cookie(
    response: HTTPResponse, strategies: Optional[List[CookieStrategy]] = None
) -> Optional[str]:
    for strategy in strategies or COOKIE_STRATEGIES:
        cookie = strategy(response)
        if cookie:
            logger.debug("Session cookie found by %s", strategy.__name__)
            return cookie
    return None


def _encode_credential(value: str) -> str:
    try:
        return quote(value, safe="")
    except UnicodeEncodeError as exc:
        raise InvalidCredentialsError() from exc


def login_url(host: str, token: str, username: str, password: str) -> str:
    return (
        f"http://{host}/{token}/htdocs/login/system.xml"
        f"?action=login&user={_encode_credential(username)}"
        f"&password={_encode_credential(password)}&ssd=true&"
    )


def login(
    host: str,
    username: str,
    password: str,
    session_token: Optional[str] = None,
    session_cookie: Optional[str] = None,
    http: Optional[ArubaHTTPClient] = None,
) -> Session:
    """
    Establish a session on ``host``.

    When both ``session_token`` and ``session_cookie`` are given no request is
    made. A token given alone skips the redirect step; a cookie given alone
    skips cookie extraction.

    Raises:
        AuthenticationError: token or cookie could not be obtained.
        InvalidCredentialsError: credentials cannot be URL-encoded.
        NetworkError / InvalidURLError: transport failures.
    """
    if session_token and session_cookie:
        logger.info("Using provided session token/cookie for %s", host)
        return Session(host=host, session_token=session_token, session_cookie=session_cookie, username=username)

    http = http or ArubaHTTPClient()

    token = session_token
    if not token:
        start_url = f"http://{host}/"
        logger.info("Requesting session token from %s", start_url)
        response = http.fetch(start_url)
        token = extract_session_token(response, host)
        if not token:
            raise AuthenticationError(f"Failed to extract session token from URL: {response.url}")

    cookie = session_cookie
    if not cookie:
        logger.info("Logging in to %s as %s", host, username)
        response = http.fetch(login_url(host, token, username, password))
        cookie = extract_session_cookie(response)
        if not cookie:
            raise AuthenticationError(
                f"Failed to obtain session cookie from login response. Set-Cookie: {response.set_cookie}"
            )

    logger.info("Session established on %s", host)
    return Session(host=host, session_token=token, session_cookie=cookie, username=username)
