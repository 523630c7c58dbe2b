"""HTTP(S) transfer of dist artifacts.

Fetching follows an explicit state machine:

    attempt -> classify -> ok: done
                         -> auth: prompt once (interactive only) -> attempt
                         -> not_found / error: fail

A 401 always means credentials are needed. A 404 on the first attempt made
without credentials may be a private resource hiding behind "not found", so it
is treated as an authentication failure too; any later 404 is genuine.
"""

import logging
from pathlib import Path
from urllib.parse import urlparse

import requests

from .console import ConsoleIO
from .exceptions import AuthenticationRequiredError
from .exceptions import DownloadNotFoundError
from .exceptions import TransportError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

OUTCOME_OK = "ok"
OUTCOME_AUTH = "auth"
OUTCOME_NOT_FOUND = "not_found"
OUTCOME_ERROR = "error"


def classify_response(status_code: int, attempt: int, sent_credentials: bool) -> str:
    """
    Map an HTTP status to a fetch outcome.

    Args:
        status_code: Response status
        attempt: Zero-based attempt number for this URL
        sent_credentials: Whether the request carried credentials

    Example:
        >>> classify_response(404, 0, sent_credentials=False)
        'auth'
        >>> classify_response(404, 1, sent_credentials=True)
        'not_found'
    """
    if status_code < 400:
        return OUTCOME_OK
    if status_code == 401:
        return OUTCOME_AUTH
    if status_code == 404:
        if attempt == 0 and not sent_credentials:
            return OUTCOME_AUTH
        return OUTCOME_NOT_FOUND
    return OUTCOME_ERROR


class HttpTransport:
    """Streams URLs to files with proxy support and Basic auth."""

    def __init__(
        self,
        io: ConsoleIO,
        proxy: str | None = None,
        timeout: float = 30.0,
        max_auth_retries: int = 1,
        session: requests.Session | None = None,
    ):
        """Initialize transport.

        Args:
            io: IO used for credential storage and prompts
            proxy: Proxy URL for http and https requests
            timeout: Connect/read timeout in seconds
            max_auth_retries: Credential prompts allowed per URL
            session: requests session (injected in tests)
        """
        self.io = io
        self.proxy = proxy
        self.timeout = timeout
        self.max_auth_retries = max_auth_retries
        self.session = session or requests.Session()

    def copy(self, url: str, destination: Path) -> None:
        """
        Download url into destination.

        Raises:
            AuthenticationRequiredError: Credentials needed but unavailable or rejected
            DownloadNotFoundError: Resource does not exist
            TransportError: Any other HTTP or network failure
        """
        host = urlparse(url).hostname or url
        auth_retries = 0
        attempt = 0

        while True:
            credentials = self.io.get_authentication(host)
            response = self._request(url, credentials)
            try:
                outcome = classify_response(response.status_code, attempt, credentials is not None)
                if outcome == OUTCOME_OK:
                    self._write(response, destination, url)
                    return
                status_code = response.status_code
            finally:
                response.close()

            attempt += 1
            context = {"url": url, "status_code": status_code}

            if outcome == OUTCOME_NOT_FOUND:
                raise DownloadNotFoundError(f"The '{url}' URL could not be found (HTTP {status_code})", context=context)
            if outcome == OUTCOME_ERROR:
                raise TransportError(f"The '{url}' URL could not be accessed (HTTP {status_code})", context=context)

            if auth_retries >= self.max_auth_retries:
                if status_code == 404:
                    raise DownloadNotFoundError(f"The '{url}' URL could not be found (HTTP 404)", context=context)
                raise AuthenticationRequiredError(f"Invalid credentials for '{url}'", context=context)

            if not self.io.is_interactive():
                if status_code == 404:
                    raise DownloadNotFoundError(
                        f"The '{url}' URL could not be found. If it is private, credentials are required,"
                        " which can only be entered in an interactive session.",
                        context=context,
                    )
                raise AuthenticationRequiredError(
                    f"The '{url}' URL requires authentication.\nYou must be using the interactive console.",
                    context=context,
                )

            self._prompt_credentials(host)
            auth_retries += 1

    def _request(self, url: str, credentials: tuple[str, str] | None) -> requests.Response:
        proxies = {"http": self.proxy, "https": self.proxy} if self.proxy else None
        logger.debug(f"Downloading {url}")
        try:
            return self.session.get(
                url,
                stream=True,
                timeout=self.timeout,
                proxies=proxies,
                auth=credentials,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            raise TransportError(f"Failed to download {url}: {e}", context={"url": url}) from e

    def _write(self, response: requests.Response, destination: Path, url: str) -> None:
        total = int(response.headers.get("content-length") or 0)
        received = 0
        last_reported = -1
        try:
            with open(destination, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    f.write(chunk)
                    received += len(chunk)
                    if total:
                        progress = received * 100 // total
                        if progress // 5 != last_reported // 5:
                            last_reported = progress
                            logger.debug(f"Downloading: {progress}%")
        except requests.RequestException as e:
            destination.unlink(missing_ok=True)
            raise TransportError(f"Failed to download {url}: {e}", context={"url": url}) from e

    def _prompt_credentials(self, host: str) -> None:
        logger.info(f"    Authorization required ({host}):")
        username = self.io.ask("      Username: ") or ""
        password = self.io.ask_and_hide_answer("      Password: ")
        self.io.set_authentication(host, username, password)
