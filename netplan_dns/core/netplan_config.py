import copy
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml

from ..models.network_models import Context
from .errors import AmbiguousConfiguration, ValidationFailed

logger = logging.getLogger(__name__)

# Sections where an existing entry for the target interface may live.
INTERFACE_SECTIONS = ("ethernets", "wifis", "bonds", "bridges", "vlans")

Chooser = Callable[[str, List[str]], str]


def new_document() -> Dict[str, Any]:
    """Document used when the netplan directory holds no configuration."""
    return {
        "network": {
            "version": 2,
            "renderer": "networkd",
            "ethernets": {},
        }
    }


def find_config_files(netplan_dir: Path) -> List[Path]:
    if not netplan_dir.is_dir():
        return []
    files = [p for p in netplan_dir.iterdir() if p.is_file() and p.suffix in (".yaml", ".yml")]
    return sorted(files)


def _match_selection(files: List[Path], selection: str) -> Optional[Path]:
    selection = str(selection).strip()
    if selection.isdigit():
        index = int(selection)
        if 1 <= index <= len(files):
            return files[index - 1]
        return None
    for config_file in files:
        if selection in (config_file.name, str(config_file)):
            return config_file
    return None


def locate_config(ctx: Context, selection: Optional[str] = None,
                  chooser: Optional[Chooser] = None) -> Tuple[Path, bool]:
    """Pick the netplan document to edit.

    Returns the path and whether it already exists. An empty directory yields
    ``<netplan_dir>/<default_config_name>`` which the caller synthesises.
    """
    files = find_config_files(ctx.netplan_dir)

    if selection:
        chosen = _match_selection(files, selection)
        if chosen is None:
            raise AmbiguousConfiguration(f"No netplan configuration matches {selection!r}")
        logger.info("Selected configuration: %s", chosen)
        return chosen, True

    if not files:
        target = ctx.netplan_dir / ctx.default_config_name
        logger.warning("No existing netplan configuration found, will create %s", target)
        return target, False

    if len(files) == 1:
        logger.info("Using existing configuration: %s", files[0])
        return files[0], True

    names = [str(f) for f in files]
    if ctx.interactive and chooser is not None:
        chosen = _match_selection(files, chooser("Select configuration file", names))
        if chosen is None:
            raise AmbiguousConfiguration("Invalid configuration file selection")
        logger.info("Selected configuration: %s", chosen)
        return chosen, True

    raise AmbiguousConfiguration(
        f"Multiple netplan configurations found ({', '.join(f.name for f in files)}); "
        "select one explicitly"
    )


def parse_document(text: str) -> Dict[str, Any]:
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValidationFailed(f"Netplan configuration is not valid YAML: {e}") from e

    if document is None:
        return new_document()
    if not isinstance(document, dict):
        raise ValidationFailed("Netplan configuration root must be a mapping")
    network = document.get("network")
    if network is not None and not isinstance(network, dict):
        raise ValidationFailed("'network' must be a mapping")
    return document


def load_document(path: Path) -> Dict[str, Any]:
    with open(path, "r") as f:
        return parse_document(f.read())


def dump_document(document: Dict[str, Any]) -> str:
    return yaml.safe_dump(document, default_flow_style=False, sort_keys=False, indent=2)


def find_interface(document: Dict[str, Any], interface_name: str) -> Optional[Tuple[str, Dict[str, Any]]]:
    """Return ``(section, entry)`` for the first section defining the interface."""
    network = document.get("network") or {}
    for section in INTERFACE_SECTIONS:
        entries = network.get(section)
        if isinstance(entries, dict) and interface_name in entries:
            entry = entries[interface_name]
            if entry is None:
                entry = entries[interface_name] = {}
            return section, entry
    return None


def _suppress_dhcp_dns(entry: Dict[str, Any], family: str) -> None:
    if not entry.get(family):
        return
    overrides = entry.get(f"{family}-overrides")
    if not isinstance(overrides, dict):
        overrides = {}
    overrides["use-dns"] = False
    entry[f"{family}-overrides"] = overrides


def apply_nameservers(document: Dict[str, Any], interface_name: str, addresses: List[str],
                      kind: str = "ethernet") -> Dict[str, Any]:
    """Return a copy of ``document`` with the interface's nameservers replaced.

    Every other field is kept as is; a missing interface is created with DHCP
    enabled under ``wifis`` or ``ethernets`` depending on ``kind``.
    """
    result = copy.deepcopy(document)
    network = result.get("network")
    if not isinstance(network, dict):
        network = result["network"] = {}
    network.setdefault("version", 2)

    addresses = list(dict.fromkeys(addresses))
    found = find_interface(result, interface_name)

    if found is not None:
        section, entry = found
        logger.info("Interface %s found in %s, updating DNS only", interface_name, section)
        nameservers = entry.get("nameservers")
        if not isinstance(nameservers, dict):
            nameservers = {}
        nameservers["addresses"] = addresses
        entry["nameservers"] = nameservers
        _suppress_dhcp_dns(entry, "dhcp4")
        _suppress_dhcp_dns(entry, "dhcp6")
        return result

    section = "wifis" if kind == "wifi" else "ethernets"
    if not isinstance(network.get(section), dict):
        network[section] = {}
    network[section][interface_name] = {
        "dhcp4": True,
        "dhcp6": False,
        "nameservers": {"addresses": addresses},
        "dhcp4-overrides": {"use-dns": False},
    }
    logger.info("Interface %s not in configuration, added under %s", interface_name, section)
    if section == "wifis":
        logger.warning("Wi-Fi interface %s added without access points; "
                       "credentials need to be configured separately", interface_name)
    return result


def interface_nameservers(document: Dict[str, Any]) -> Dict[str, List[str]]:
    """Map every configured interface to its nameserver addresses."""
    summary: Dict[str, List[str]] = {}
    network = document.get("network") or {}
    for section in INTERFACE_SECTIONS:
        entries = network.get(section)
        if not isinstance(entries, dict):
            continue
        for name, entry in entries.items():
            nameservers = entry.get("nameservers") if isinstance(entry, dict) else None
            addresses = nameservers.get("addresses") if isinstance(nameservers, dict) else None
            summary.setdefault(name, list(addresses) if isinstance(addresses, list) else [])
    return summary
