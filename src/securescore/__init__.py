"""Microsoft Secure Score compliance report generator."""

__version__ = "1.2.0"
