"""Protocol version lookup with a bounded timeout and a fixed fallback."""

from __future__ import annotations

import asyncio
import json
import logging

import aiohttp

from pykaya._constants import DEFAULT_VERSION_TIMEOUT, FALLBACK_VERSION, VERSION_URL
from pykaya.exceptions import VersionResolutionError
from pykaya.models.version import ProtocolVersion, VersionResolution

_logger = logging.getLogger(__name__)


async def fetch_latest_version(
    http_session: aiohttp.ClientSession,
    *,
    url: str = VERSION_URL,
    timeout: float = DEFAULT_VERSION_TIMEOUT,
) -> ProtocolVersion:
    """Fetch the latest advertised protocol version.

    The document is expected to look like ``{"version": [2, 3000, 1015901307]}``.

    Raises
    ------
    VersionResolutionError
        On network failure, timeout, non-200 status or an unexpected body.
    """
    _logger.debug("GET %s", url)
    try:
        async with asyncio.timeout(timeout):
            async with http_session.get(url) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise VersionResolutionError(f"HTTP {resp.status} from version lookup", url=url)
    except VersionResolutionError:
        raise
    except TimeoutError as exc:
        raise VersionResolutionError(f"Version lookup timed out after {timeout}s", url=url) from exc
    except aiohttp.ClientError as exc:
        raise VersionResolutionError(f"Version lookup failed: {exc}", url=url) from exc

    try:
        body = json.loads(text)
    except json.JSONDecodeError as exc:
        raise VersionResolutionError(f"Invalid JSON from version lookup: {text[:200]}", url=url) from exc

    raw_version = body.get("version") if isinstance(body, dict) else None
    if not isinstance(raw_version, list):
        raise VersionResolutionError("Version document missing 'version' list", url=url)
    try:
        return ProtocolVersion.from_sequence(raw_version)
    except ValueError as exc:
        raise VersionResolutionError(f"Malformed version {raw_version!r}", url=url) from exc


async def resolve_version(
    http_session: aiohttp.ClientSession,
    *,
    url: str = VERSION_URL,
    timeout: float = DEFAULT_VERSION_TIMEOUT,
    fallback: tuple[int, int, int] = FALLBACK_VERSION,
) -> VersionResolution:
    """Resolve the version to connect with. Never raises for lookup failures."""
    try:
        version = await fetch_latest_version(http_session, url=url, timeout=timeout)
    except VersionResolutionError as exc:
        fallback_version = ProtocolVersion.from_sequence(fallback)
        _logger.warning("Could not fetch latest version, using fallback %s: %s", fallback_version, exc)
        return VersionResolution(version=fallback_version, is_latest=False, error=str(exc))
    _logger.info("Protocol version fetched: %s", version)
    return VersionResolution(version=version, is_latest=True)
