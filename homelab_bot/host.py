import logging
from typing import List

from .external_ip import UNKNOWN_ADDRESS

logger: logging.Logger = logging.getLogger(__name__)

ROUTE_TABLE_PATH: str = "/proc/net/route"
UPTIME_PATH: str = "/proc/uptime"
DEFAULT_ROUTE_DESTINATION: str = "00000000"


def hex_to_ip(hex_string: str) -> str:
    """Convert a little-endian 8 character hex address to dotted decimal."""
    address_bytes: List[int] = [
        int(hex_string[index:index + 2], 16) for index in range(0, 8, 2)
    ]
    return ".".join(str(byte) for byte in reversed(address_bytes))


def gateway_address(route_path: str = ROUTE_TABLE_PATH) -> str:
    """
    Return the gateway of the default route from the kernel routing table.

    Never raises: any read or parse failure, or a table without a default
    route, yields the "unknown" sentinel.
    """
    try:
        with open(route_path, "r", encoding="utf-8") as route_file:
            route_lines: List[str] = route_file.read().strip().splitlines()[1:]
        for route_line in route_lines:
            fields: List[str] = route_line.split()
            if len(fields) < 3:
                continue
            destination, gateway = fields[1], fields[2]
            if destination == DEFAULT_ROUTE_DESTINATION and gateway:
                return hex_to_ip(gateway)
        logger.debug("No default route found in %s", route_path)
    except Exception as route_error:
        logger.error("Failed to read gateway IP: %s", route_error)
    return UNKNOWN_ADDRESS


def host_uptime_seconds(uptime_path: str = UPTIME_PATH) -> float:
    with open(uptime_path, "r", encoding="utf-8") as uptime_file:
        return float(uptime_file.read().split()[0])
