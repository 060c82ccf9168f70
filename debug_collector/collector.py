"""Fetch pprof profiles and metrics endpoints from a running server and dump them to disk."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
import time
from typing import Callable, Iterable, List, Optional
from urllib.parse import SplitResult, urlsplit, urlunsplit

import httpx

logger = logging.getLogger(__name__)

PROFILE_TYPES = (
    "goroutine",
    "heap",
    "threadcreate",
    "block",
    "mutex",
    "profile",
    "trace",
)

METRIC_TYPES = (
    "jemalloc",
    "state",
    "health",
)


class DebugInfoError(Exception):
    """Base class for failures while collecting debug information."""


class AddressError(DebugInfoError):
    """Raised when a target address cannot be turned into a base URL."""


class FetchError(DebugInfoError):
    """Raised when an endpoint cannot be fetched or answers with an error status."""


class DumpFileError(DebugInfoError):
    """Raised when a response cannot be written to its dump file."""


@dataclass
class EndpointResult:
    name: str
    source: str
    path: str
    ok: bool
    error: Optional[str] = None
    bytes_written: int = 0


@dataclass
class CollectReport:
    address: str
    base_url: Optional[str]
    error: Optional[str] = None
    results: List[EndpointResult] = field(default_factory=list)

    @property
    def succeeded(self) -> List[EndpointResult]:
        return [result for result in self.results if result.ok]

    @property
    def failed(self) -> List[EndpointResult]:
        return [result for result in self.results if not result.ok]

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed


def normalize_address(address: str) -> str:
    """Turn a bare ``host:port`` or a full URL into a base URL.

    The address is parsed as given first. When that fails, or the result has
    no host and is not a ``file`` URL, it is parsed again with ``http://`` in
    front. Anything that still has no host raises :class:`AddressError`.
    """
    try:
        parts = _parse(address)
    except ValueError:
        parts = None
    if parts is None or (not parts.netloc and parts.scheme != "file"):
        try:
            parts = _parse("http://" + address)
        except ValueError as exc:
            raise AddressError(f"error while parsing address {address!r}: {exc}") from exc
    if not parts.netloc:
        raise AddressError(f"error while parsing address {address!r}: no host")
    if any(ch.isspace() or not ch.isprintable() for ch in parts.netloc):
        raise AddressError(f"error while parsing address {address!r}: invalid character in host")
    return urlunsplit((parts.scheme, parts.netloc, parts.path.rstrip("/"), "", ""))


def _parse(address: str) -> SplitResult:
    parts = urlsplit(address)
    # urlsplit defers port validation; touch it so a bad port fails here.
    parts.port
    return parts


def compute_timeout(duration: float) -> float:
    """Client timeout for a collection that runs ``duration`` seconds server side."""
    return duration + duration / 2 + 2


def profile_url(base_url: str, name: str, duration: float) -> str:
    return f"{base_url}/debug/pprof/{name}?duration={int(duration)}"


def metric_url(base_url: str, name: str) -> str:
    return f"{base_url}/{name}"


def output_path(path_prefix: str, name: str) -> str:
    return f"{path_prefix}{name}.gz"


def save_debug(
    source: str,
    path: str,
    duration: float,
    client: Optional[httpx.Client] = None,
) -> int:
    """Fetch ``source`` and write the raw response body to ``path``.

    Returns the number of bytes written. Raises :class:`FetchError` or
    :class:`DumpFileError`; the response and the file are closed either way.
    """
    logger.info("fetching information over HTTP from %s", source)
    if duration > 0:
        logger.info("please wait... (%ss)", duration)

    limit = compute_timeout(duration)
    deadline = time.monotonic() + limit
    own_client = client is None
    if own_client:
        client = httpx.Client()
    try:
        with client.stream("GET", source, timeout=httpx.Timeout(limit), follow_redirects=True) as response:
            if not response.is_success:
                raise FetchError(_status_error(response))
            return _dump_body(response, path, deadline, limit)
    except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as exc:
        raise FetchError(f"http fetch: {exc}") from exc
    finally:
        if own_client:
            client.close()


def _status_error(response: httpx.Response) -> str:
    status = f"{response.status_code} {response.reason_phrase}".strip()
    content_type = response.headers.get("Content-Type", "")
    if response.headers.get("X-Go-Pprof") and "text/plain" in content_type:
        try:
            body = response.read().decode("utf-8", errors="replace")
        except httpx.HTTPError:
            return f"server response: {status}"
        return f"server response: {status} - {body.strip()}"
    return f"server response: {status}"


def _dump_body(response: httpx.Response, path: str, deadline: float, limit: float) -> int:
    try:
        out = open(path, "wb")
    except OSError as exc:
        raise DumpFileError(f"error while creating dump file: {exc}") from exc

    written = 0
    try:
        with out:
            for chunk in response.iter_raw():
                if time.monotonic() > deadline:
                    raise FetchError(f"http fetch: timeout after {limit:g}s while reading body")
                out.write(chunk)
                written += len(chunk)
    except FetchError:
        _remove_partial(path)
        raise
    except (httpx.HTTPError, httpx.StreamError) as exc:
        _remove_partial(path)
        raise FetchError(f"error while reading response body: {exc}") from exc
    except OSError as exc:
        _remove_partial(path)
        raise DumpFileError(f"error while writing dump file: {exc}") from exc
    return written


def _remove_partial(path: str) -> None:
    try:
        os.remove(path)
    except OSError:
        logger.debug("could not remove partial dump file %s", path)


def collect_profiles(
    address: str,
    path_prefix: str,
    duration: float,
    profiles: Iterable[str],
    client: Optional[httpx.Client] = None,
) -> CollectReport:
    """Save each named pprof profile from ``address`` under ``path_prefix``."""
    return _collect(
        address,
        path_prefix,
        duration,
        profiles,
        client,
        build_url=lambda base, name: profile_url(base, name, duration),
        kind="profile",
        failure="error while saving pprof profile from %s: %s",
    )


def collect_metrics(
    address: str,
    path_prefix: str,
    duration: float,
    metrics: Iterable[str],
    client: Optional[httpx.Client] = None,
) -> CollectReport:
    """Save each named metrics endpoint from ``address`` under ``path_prefix``."""
    return _collect(
        address,
        path_prefix,
        duration,
        metrics,
        client,
        build_url=metric_url,
        kind="metric",
        failure="error while saving metric from %s: %s",
    )


def _collect(
    address: str,
    path_prefix: str,
    duration: float,
    names: Iterable[str],
    client: Optional[httpx.Client],
    *,
    build_url: Callable[[str, str], str],
    kind: str,
    failure: str,
) -> CollectReport:
    try:
        base_url = normalize_address(address)
    except AddressError as exc:
        logger.error("%s", exc)
        return CollectReport(address=address, base_url=None, error=str(exc))

    report = CollectReport(address=address, base_url=base_url)
    own_client = client is None
    if own_client:
        client = httpx.Client()
    try:
        for name in names:
            source = build_url(base_url, name)
            path = output_path(path_prefix, name)
            try:
                written = save_debug(source, path, duration, client=client)
            except DebugInfoError as exc:
                logger.error(failure, source, exc)
                report.results.append(EndpointResult(name=name, source=source, path=path, ok=False, error=str(exc)))
                continue
            logger.info("saving %s %s in %s", name, kind, path)
            report.results.append(
                EndpointResult(name=name, source=source, path=path, ok=True, bytes_written=written)
            )
    finally:
        if own_client:
            client.close()
    return report
