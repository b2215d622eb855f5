"""Shared HTTP plumbing for registry clients."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from biodata_manager.config import Settings, load_settings
from biodata_manager.errors import (
    FilesystemError,
    RegistryStatusError,
    RegistryTransportError,
)

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
BASE_DELAY = 0.2  # seconds, grows linearly per attempt
RETRYABLE_STATUS = {429, 500, 502, 503, 504}
_CHUNK_SIZE = 1 << 16


class RetryableStatus(Exception):
    """Raised inside the retry loop for transient status codes."""

    def __init__(self, response: requests.Response) -> None:
        self.response = response
        super().__init__(f"retryable status {response.status_code}")


class RegistryHttpClient:
    """Base client: session defaults, retries and error classification."""

    registry = "http"

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": self.settings.user_agent})

    @property
    def timeout(self) -> float:
        return self.settings.http_timeout

    @retry(
        stop=stop_after_attempt(MAX_RETRIES + 1),
        wait=wait_incrementing(start=BASE_DELAY, increment=BASE_DELAY),
        retry=retry_if_exception_type(
            (RetryableStatus, requests.Timeout, requests.ConnectionError)
        ),
        reraise=True,
    )
    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        kwargs.setdefault("timeout", self.timeout)
        response = self._session.request(method, url, **kwargs)
        if response.status_code in RETRYABLE_STATUS:
            logger.debug(
                "Retryable status from %s",
                self.registry,
                extra={"url": url, "status": response.status_code},
            )
            raise RetryableStatus(response)
        return response

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Send with retries; the last transient response is returned as-is."""
        try:
            return self._send(method, url, **kwargs)
        except RetryableStatus as exc:
            return exc.response
        except requests.RequestException as exc:
            raise RegistryTransportError(self.registry, str(exc)) from exc

    def probe(self, url: str, **kwargs: Any) -> requests.Response:
        """Single attempt without retries, whatever the status."""
        kwargs.setdefault("timeout", self.timeout)
        try:
            return self._session.get(url, **kwargs)
        except requests.RequestException as exc:
            raise RegistryTransportError(self.registry, str(exc)) from exc

    def _check(self, response: requests.Response) -> requests.Response:
        if response.ok:
            return response
        raise RegistryStatusError(
            self.registry, response.status_code, response.text or ""
        )

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self._check(self.request("GET", url, **kwargs))

    def get_json(self, url: str, **kwargs: Any) -> Any:
        response = self.get(url, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise RegistryTransportError(
                self.registry, f"invalid JSON from {url}: {exc}"
            ) from exc

    def download_to(
        self, url: str, destination: Path, **kwargs: Any
    ) -> requests.Response:
        """Stream ``url`` into ``destination`` and return the response."""
        kwargs.setdefault("timeout", self.settings.download_timeout)
        response = self._check(self.request("GET", url, stream=True, **kwargs))
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with destination.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    if chunk:
                        handle.write(chunk)
        except requests.RequestException as exc:
            raise RegistryTransportError(self.registry, str(exc)) from exc
        except OSError as exc:
            raise FilesystemError(f"write {destination}: {exc}") from exc
        finally:
            response.close()
        return response


__all__ = [
    "BASE_DELAY",
    "MAX_RETRIES",
    "RETRYABLE_STATUS",
    "RegistryHttpClient",
]
