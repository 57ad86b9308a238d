"""Source-IP allowlisting for gateway notifications."""

import ipaddress

from src.utils.logger import get_logger

logger = get_logger(__name__)


class IPValidator:
    """Checks webhook source addresses against the gateway's published ranges.

    Outside production every address is accepted. In production the address
    is always checked; ``enforce`` decides whether an address outside the
    ranges is rejected or only reported.
    """

    def __init__(
        self,
        allowed_ranges: list[str],
        is_production: bool = False,
        enforce: bool = False,
    ):
        self.networks = [
            ipaddress.ip_network(cidr, strict=False) for cidr in allowed_ranges
        ]
        self.is_production = is_production
        self.enforce = enforce

    def is_in_allowed_ranges(self, ip: str) -> bool:
        try:
            address = ipaddress.ip_address(ip.strip())
        except ValueError:
            return False
        return any(
            address.version == network.version and address in network
            for network in self.networks
        )

    def is_valid(self, ip: str) -> bool:
        if not self.is_production:
            return True

        if self.is_in_allowed_ranges(ip):
            return True

        logger.warning(
            "webhook_ip_outside_allowlist", ip_address=ip, enforced=self.enforce
        )
        return not self.enforce
