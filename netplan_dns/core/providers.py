import logging
import re
from typing import Iterable, List, Optional

from ..models.network_models import DNSProvider
from .errors import InvalidAddress, UnknownProvider

logger = logging.getLogger(__name__)

CUSTOM = "custom"
MAX_RECOMMENDED_SERVERS = 4

_DOTTED_QUAD = re.compile(r"^([0-9]{1,3}\.){3}[0-9]{1,3}$")

PROVIDERS: List[DNSProvider] = [
    DNSProvider(key="cloudflare", number=1, name="Cloudflare",
                description="Fast, Privacy-focused", addresses=["1.1.1.1", "1.0.0.1"]),
    DNSProvider(key="google", number=2, name="Google",
                description="Reliable, Fast", addresses=["8.8.8.8", "8.8.4.4"]),
    DNSProvider(key="quad9", number=3, name="Quad9",
                description="Security-focused", addresses=["9.9.9.9", "149.112.112.112"]),
    DNSProvider(key="opendns", number=4, name="OpenDNS",
                description="Family-safe", addresses=["208.67.222.222", "208.67.220.220"]),
    DNSProvider(key="adguard", number=5, name="AdGuard",
                description="Ad-blocking", addresses=["94.140.14.14", "94.140.15.15"]),
    DNSProvider(key="nextdns", number=6, name="NextDNS",
                description="Customizable", addresses=["45.90.28.0", "45.90.30.0"]),
]

CUSTOM_NUMBER = len(PROVIDERS) + 1


def is_valid_ipv4(address: str) -> bool:
    """Dotted quad with every octet in 0-255."""
    if not _DOTTED_QUAD.match(address):
        return False
    return all(int(octet) <= 255 for octet in address.split("."))


def validate_addresses(addresses: Iterable[str]) -> List[str]:
    """Validate and deduplicate ``addresses`` keeping first-seen order."""
    result: List[str] = []
    for raw in addresses:
        address = raw.strip()
        if not is_valid_ipv4(address):
            raise InvalidAddress(f"Invalid IP address: {raw!r}")
        if address not in result:
            result.append(address)
    if not result:
        raise InvalidAddress("At least one DNS server must be specified")
    if len(result) > MAX_RECOMMENDED_SERVERS:
        logger.warning("%d DNS servers given, a maximum of %d is recommended",
                       len(result), MAX_RECOMMENDED_SERVERS)
    return result


def get_provider(identifier: str) -> Optional[DNSProvider]:
    ident = str(identifier).strip().lower()
    for provider in PROVIDERS:
        if ident in (provider.key, str(provider.number)):
            return provider
    return None


def is_custom(identifier: str) -> bool:
    return str(identifier).strip().lower() in (CUSTOM, str(CUSTOM_NUMBER))


def resolve_provider(identifier: str, custom_addresses: Optional[Iterable[str]] = None) -> DNSProvider:
    """Turn a preset key, its menu number or ``custom`` into a provider with a
    validated, deduplicated address list."""
    if is_custom(identifier):
        addresses = validate_addresses(custom_addresses or [])
        return DNSProvider(key=CUSTOM, number=CUSTOM_NUMBER, name="Custom",
                           description="User supplied", addresses=addresses)

    provider = get_provider(identifier)
    if provider is None:
        raise UnknownProvider(f"Invalid DNS provider selection: {identifier!r}")
    return provider.model_copy(update={"addresses": validate_addresses(provider.addresses)})
