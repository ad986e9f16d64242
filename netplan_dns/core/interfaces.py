import json
import logging
import re
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..models.network_models import Context, NetworkInterface
from .errors import AmbiguousInterface, NoInterfaceFound
from .netplan_config import Chooser

logger = logging.getLogger(__name__)

# Container bridges, veth pairs, libvirt/lxc bridges, tun/tap, WireGuard and PPP.
VIRTUAL_INTERFACE = re.compile(r"^(docker|br-|veth|virbr|lxc|tun|tap|wg|ppp)")
WIRELESS_NAME = re.compile(r"^(wlan|wifi|wl)")

# /sys/class/net/<if>/type values
ARPHRD_ETHER = "1"
ARPHRD_IEEE802 = "6"

Lister = Callable[[], List[Dict[str, Any]]]

def list_links() -> List[Dict[str, Any]]:
    """Raw link list from ``ip -j link show``."""
    result = subprocess.run(["ip", "-j", "link", "show"],
                            capture_output=True, text=True, check=True)
    return json.loads(result.stdout or "[]")


class InterfaceDetector:
    def __init__(self, ctx: Context, lister: Optional[Lister] = None):
        self.ctx = ctx
        self.lister = lister or list_links

    def _sysfs(self, name: str) -> Path:
        return Path(self.ctx.sysfs_net_dir) / name

    def is_loopback(self, link: Dict[str, Any]) -> bool:
        return (link.get("ifname") == "lo"
                or "LOOPBACK" in link.get("flags", [])
                or link.get("link_type") == "loopback")

    def is_physical(self, link: Dict[str, Any]) -> bool:
        """Whether a link is a candidate for DNS configuration."""
        name = link.get("ifname", "")
        if not name or self.is_loopback(link):
            return False
        if VIRTUAL_INTERFACE.match(name):
            return False

        sysfs = self._sysfs(name)
        if sysfs.exists():
            iface_type = ""
            try:
                iface_type = (sysfs / "type").read_text().strip()
            except OSError:
                pass
            if iface_type not in (ARPHRD_ETHER, ARPHRD_IEEE802):
                if not (sysfs / "device").exists() and not (sysfs / "wireless" / "name").exists():
                    return False
        return True

    def kind(self, name: str) -> str:
        sysfs = self._sysfs(name)
        if (sysfs / "wireless").is_dir() or WIRELESS_NAME.match(name):
            return "wifi"
        try:
            iface_type = (sysfs / "type").read_text().strip()
        except OSError:
            return "ethernet"
        if iface_type in (ARPHRD_ETHER, ARPHRD_IEEE802):
            return "ethernet"
        return "other"

    def interfaces(self) -> List[NetworkInterface]:
        """Every link except loopback, flagged with whether it is physical."""
        result = []
        for link in self.lister():
            name = link.get("ifname")
            if not name or self.is_loopback(link):
                continue
            result.append(NetworkInterface(
                name=name,
                kind=self.kind(name),
                state=link.get("operstate"),
                is_physical=self.is_physical(link),
            ))
        return result

    def candidates(self) -> List[NetworkInterface]:
        return [iface for iface in self.interfaces() if iface.is_physical]

    def detect(self, selection: Optional[str] = None,
               chooser: Optional[Chooser] = None) -> NetworkInterface:
        """Pick the interface whose nameservers will be rewritten."""
        logger.info("Detecting physical network interfaces...")
        all_interfaces = self.interfaces()
        candidates = [iface for iface in all_interfaces if iface.is_physical]

        if not candidates:
            names = ", ".join(iface.name for iface in all_interfaces) or "none"
            raise NoInterfaceFound(f"No physical network interfaces found (available: {names})")

        if selection:
            for iface in candidates:
                if iface.name == selection:
                    logger.info("Selected interface: %s", iface.name)
                    return iface
            raise NoInterfaceFound(f"{selection} is not a physical network interface")

        if len(candidates) == 1:
            logger.info("Using physical interface: %s", candidates[0].name)
            return candidates[0]

        names = [iface.name for iface in candidates]
        if self.ctx.interactive and chooser is not None:
            choice = chooser("Select interface", names)
            for iface in candidates:
                if choice == iface.name:
                    logger.info("Selected interface: %s", iface.name)
                    return iface
            raise NoInterfaceFound(f"Invalid interface selection: {choice!r}")

        raise AmbiguousInterface(
            f"Multiple physical interfaces found ({', '.join(names)}); select one explicitly"
        )
