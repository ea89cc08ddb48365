"""Gwaihir: Wake-on-LAN messenger for an allowlisted set of machines."""

__version__ = "0.1.0"
