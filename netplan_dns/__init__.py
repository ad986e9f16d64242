"""Netplan DNS configuration updater."""

__version__ = "1.0.0"
