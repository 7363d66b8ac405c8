"""crates.io client: list the published versions of a crate."""

from __future__ import annotations

import time
from typing import Any

import httpx
import structlog
from packaging.version import Version

from cargo_bounds.exceptions import RegistryError
from cargo_bounds.versions import parse_version

log = structlog.get_logger("cargo_bounds.registry")

CRATES_IO_API = "https://crates.io/api/v1"
DEFAULT_USER_AGENT = "cargo-bounds (https://github.com/cargo-bounds/cargo-bounds)"

_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 1.0  # seconds
_MAX_PAGES = 50


class CratesIoClient:
    """Thin synchronous wrapper around the crates.io versions endpoint.

    crates.io asks crawlers for at most one request per second, so requests
    are spaced by *request_interval* seconds.
    """

    def __init__(
        self,
        base_url: str = CRATES_IO_API,
        user_agent: str = DEFAULT_USER_AGENT,
        request_interval: float = 1.0,
        include_yanked: bool = False,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            headers={"User-Agent": user_agent, "Accept": "application/json"},
            timeout=30.0,
        )
        self.request_interval = request_interval
        self.include_yanked = include_yanked
        self._last_request: float | None = None

    # ── lifecycle ──────────────────────────────────────────────────────────

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> CratesIoClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ── public ─────────────────────────────────────────────────────────────

    def list_versions(self, crate: str) -> list[Version]:
        """Return the published release versions of *crate*, ascending.

        Yanked versions are dropped unless ``include_yanked`` was set;
        pre-releases and versions that do not parse are always dropped.
        """
        versions: set[Version] = set()
        for entry in self._iter_versions(crate):
            if entry.get("yanked") and not self.include_yanked:
                continue
            version = parse_version(str(entry.get("num", "")))
            if version is not None:
                versions.add(version)
        log.info("registry.fetched", crate=crate, versions=len(versions))
        return sorted(versions)

    # ── internal ───────────────────────────────────────────────────────────

    def _iter_versions(self, crate: str):
        url = f"/crates/{crate}/versions"
        params: dict[str, Any] | None = {"per_page": 100}
        for _ in range(_MAX_PAGES):
            response = self._request_with_retry(url, params)
            if response.status_code == 404:
                raise RegistryError(f"crate {crate} not found on the registry")
            data = response.json()
            yield from data.get("versions", [])

            next_page = (data.get("meta") or {}).get("next_page")
            if not next_page:
                return
            # next_page is a query string such as "?per_page=100&seek=..."
            url = f"/crates/{crate}/versions{next_page}"
            params = None
        raise RegistryError(f"crate {crate} has more than {_MAX_PAGES} pages of versions")

    def _throttle(self) -> None:
        if self._last_request is not None:
            wait = self.request_interval - (time.monotonic() - self._last_request)
            if wait > 0:
                time.sleep(wait)
        self._last_request = time.monotonic()

    def _request_with_retry(
        self,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """GET with exponential backoff on 5xx and timeout errors."""
        last_exc: Exception | None = None
        for attempt in range(_MAX_RETRIES):
            self._throttle()
            try:
                resp = self._client.get(url, params=params)
                if resp.status_code == 404:
                    return resp
                if resp.status_code < 500:
                    resp.raise_for_status()
                    return resp

                log.warning(
                    "registry.server_error",
                    url=url,
                    status=resp.status_code,
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_exc = httpx.HTTPStatusError(
                    f"{resp.status_code}", request=resp.request, response=resp
                )
            except httpx.TimeoutException as exc:
                log.warning(
                    "registry.timeout",
                    url=url,
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_exc = exc
            except httpx.HTTPStatusError as exc:
                raise RegistryError(f"registry request {url} failed: {exc}") from exc
            except httpx.TransportError as exc:
                raise RegistryError(f"registry unreachable: {exc}") from exc

            if attempt < _MAX_RETRIES - 1:
                time.sleep(_RETRY_BASE_DELAY * (2**attempt))

        raise RegistryError(f"registry request {url} failed: {last_exc}") from last_exc
