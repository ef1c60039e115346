"""Operating system queries used by the server facade.

Network interface enumeration and process memory statistics come from
psutil; port availability is probed with a throwaway socket.
"""

from __future__ import annotations

import ipaddress
import socket

import psutil

from servekit.lib.logging_config import get_logger

logger = get_logger(__name__)

_ADDRESS_FAMILIES = (socket.AF_INET, socket.AF_INET6)

MEMORY_FIELDS = ("rss", "heapTotal", "heapUsed", "external")


def _is_loopback(address: str) -> bool:
    # IPv6 link-local addresses carry a "%scope" suffix
    try:
        return ipaddress.ip_address(address.split("%", 1)[0]).is_loopback
    except ValueError:
        return False


def get_active_network_interfaces() -> dict[str, list[str]]:
    """Return the IP addresses of every active, non-loopback interface.

    Interfaces reported as down are skipped, as are loopback addresses and
    interfaces whose only addresses are loopback ones. Address order follows
    the order reported by the operating system.

    Returns:
        Mapping of interface name to its IPv4/IPv6 addresses
    """
    addresses = psutil.net_if_addrs()
    stats = psutil.net_if_stats()

    active: dict[str, list[str]] = {}
    for name, entries in addresses.items():
        stat = stats.get(name)
        if stat is not None and not stat.isup:
            continue
        if stat is not None and "loopback" in getattr(stat, "flags", "").split(","):
            continue

        ips = [
            entry.address
            for entry in entries
            if entry.family in _ADDRESS_FAMILIES and not _is_loopback(entry.address)
        ]
        if ips:
            active[name] = ips

    logger.debug(f"Found {len(active)} active network interfaces")
    return active


def format_bytes(value: int) -> str:
    """Format a byte count as megabytes, e.g. ``"12.34 MB"``."""
    return f"{value / 1024 / 1024:.2f} MB"


def get_memory_usage(formatted: bool = False) -> dict[str, int] | dict[str, str]:
    """Snapshot the memory counters of the current process.

    Fields:
        rss: Resident set size.
        heapTotal: Virtual memory reserved by the process.
        heapUsed: Memory private to the process (USS), or RSS when the
            platform refuses the full memory query.
        external: Resident memory shared with other processes, mostly
            native libraries (``rss - heapUsed``).

    Args:
        formatted: Return human-readable strings instead of byte counts

    Returns:
        Mapping with the four fields above
    """
    process = psutil.Process()
    info = process.memory_info()
    try:
        heap_used = process.memory_full_info().uss
    except (psutil.AccessDenied, AttributeError):
        heap_used = info.rss

    usage = {
        "rss": info.rss,
        "heapTotal": info.vms,
        "heapUsed": heap_used,
        "external": max(info.rss - heap_used, 0),
    }
    if formatted:
        return {key: format_bytes(value) for key, value in usage.items()}
    return usage


def is_port_available(host: str, port: int) -> bool:
    """Check whether a listening socket could be bound to host:port.

    Args:
        host: Address to probe
        port: Port to probe

    Returns:
        True if the bind and listen succeed, False otherwise
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    with socket.socket(family, socket.SOCK_STREAM) as probe:
        probe.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            probe.bind((host, port))
            probe.listen(1)
        except OSError:
            return False
    return True
