"""Calendar source helper: fetches the iCalendar export over HTTP."""
from __future__ import annotations

import asyncio
import logging
import re

import aiohttp

from homeassistant.core import HomeAssistant
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .const import DEFAULT_FETCH_TIMEOUT
from .types import CalendarInput

_LOGGER = logging.getLogger(__name__)

_ICS_SUFFIX = re.compile(r"\.ics($|\?)", re.IGNORECASE)


def candidate_urls(url: str) -> list[str]:
    """
    URLs to try, in order.

    Calendar servers often serve the HTML view at the plain URL and the
    iCalendar text at '?export', so the export variant is tried first unless
    the URL already points at a .ics file or an export.
    """
    url = url.strip()
    if not url:
        return []
    if _ICS_SUFFIX.search(url) or "?export" in url:
        return [url]
    separator = "&" if "?" in url else "?"
    return [f"{url}{separator}export", url]


class CalendarSource:
    """Fetch calendar text with the shared aiohttp session."""

    def __init__(
        self,
        hass: HomeAssistant,
        url: str,
        username: str = "",
        password: str = "",
        timeout: int = DEFAULT_FETCH_TIMEOUT,
    ) -> None:
        self.hass = hass
        self.url = (url or "").strip()
        self._auth = None
        if username or password:
            self._auth = aiohttp.BasicAuth(username or "", password or "")
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def configured(self) -> bool:
        return bool(self.url)

    async def async_fetch(self) -> CalendarInput:
        """Return calendar text from the first URL that answers, or a failure."""
        if not self.configured:
            _LOGGER.debug("Calendar URL is not configured")
            return CalendarInput.unconfigured()

        session = async_get_clientsession(self.hass)
        urls = candidate_urls(self.url)
        reason = ""

        for url in urls:
            try:
                async with session.get(url, auth=self._auth, timeout=self._timeout) as resp:
                    if resp.status >= 400:
                        reason = f"HTTP {resp.status} {resp.reason or ''}".strip()
                        _LOGGER.debug("Calendar fetch from %s failed: %s", url, reason)
                        continue
                    # Servers often omit the charset; undecodable bytes become U+FFFD
                    text = await resp.text(errors="replace")
            except asyncio.TimeoutError:
                reason = "Timeout"
                _LOGGER.debug("Calendar fetch from %s timed out", url)
                continue
            except aiohttp.ClientError as err:
                reason = str(err) or err.__class__.__name__
                _LOGGER.debug("Calendar fetch from %s failed: %s", url, reason)
                continue

            if url != self.url:
                _LOGGER.info("Calendar loaded via export URL %s", url)
            return CalendarInput.from_text(text)

        _LOGGER.warning("Unable to load calendar from %s: %s", self.url, reason)
        return CalendarInput.failure(reason)
