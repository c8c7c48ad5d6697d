import asyncio
import logging
from typing import Optional

import requests

logger: logging.Logger = logging.getLogger(__name__)

UNKNOWN_ADDRESS: str = "unknown"
DEFAULT_LOOKUP_URL: str = "https://api.ipify.org?format=text"


def is_valid_address(address: Optional[str]) -> bool:
    return bool(address) and address != UNKNOWN_ADDRESS


# ------------------------------
# External IP service
# ------------------------------
class ExternalIPService:
    def __init__(self, url: str = DEFAULT_LOOKUP_URL, timeout: float = 10) -> None:
        self.url: str = url
        self.timeout: float = timeout

    def _lookup_sync(self) -> str:
        try:
            response = requests.get(self.url, timeout=self.timeout)
            if not response.ok:
                logger.warning(
                    "External IP lookup returned HTTP %d", response.status_code
                )
                return UNKNOWN_ADDRESS
            address: str = response.text.strip()
            if not address:
                logger.warning("External IP lookup returned an empty body")
                return UNKNOWN_ADDRESS
            logger.debug("External IP resolved: %s", address)
            return address
        except Exception as ip_error:
            logger.warning("Failed to fetch external IP: %s", ip_error)
            return UNKNOWN_ADDRESS

    async def lookup(self) -> str:
        return await asyncio.to_thread(self._lookup_sync)
