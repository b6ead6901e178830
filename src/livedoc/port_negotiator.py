"""
Free TCP port discovery for the HTTP listener and the live-reload channel.
"""

import socket
from dataclasses import dataclass
from typing import Collection, Tuple

from livedoc.app_logger import LogContext, get_default_logger
from livedoc.errors import NoPortAvailableError


def address_family(host: str, port: int = 0) -> int:
    """
    Socket family to listen with on ``host``: IPv6 for ``::`` or ``::1``,
    whatever the resolver lists first for a name.

    Raises:
        socket.gaierror: If ``host`` does not resolve
    """
    infos = socket.getaddrinfo(
        host or None, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
    )
    return infos[0][0]


@dataclass(frozen=True)
class PortLease:
    """A port reserved for one purpose for the lifetime of the process."""

    port: int
    purpose: str


class PortNegotiator:
    """
    Probes port ranges by binding a throwaway socket on the listen address.

    A port some other process (or another livedoc instance) is listening on
    fails to bind and is skipped.
    """

    def __init__(self, host: str = "localhost"):
        self.host = host
        self._logger = get_default_logger()
        self._log_context = LogContext(component="PortNegotiator")

    def is_port_free(self, port: int) -> bool:
        try:
            family = address_family(self.host, port)
            with socket.socket(family, socket.SOCK_STREAM) as sock:
                sock.bind((self.host, port))
        except OSError:
            return False
        return True

    def find_free_port(
        self, port_range: Tuple[int, int], exclude: Collection[int] = ()
    ) -> int:
        """
        Return the lowest bindable port in an inclusive range.

        Args:
            port_range: ``(low, high)``, both inclusive
            exclude: Ports already leased by this process

        Raises:
            ValueError: If the range is empty or out of bounds
            NoPortAvailableError: If every port in the range is taken
        """
        low, high = port_range
        if not 0 < low <= high <= 65535:
            raise ValueError(f"Invalid port range {low}-{high}")

        for port in range(low, high + 1):
            if port in exclude:
                continue
            if self.is_port_free(port):
                self._logger.debug(
                    "Found free port", context=self._log_context, port=port
                )
                return port

        raise NoPortAvailableError(low, high)

    def lease(
        self, purpose: str, port_range: Tuple[int, int], exclude: Collection[int] = ()
    ) -> PortLease:
        return PortLease(self.find_free_port(port_range, exclude), purpose)
