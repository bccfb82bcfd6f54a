"""
Miracle IPC library exceptions.

This module defines all custom exceptions used throughout the library.
"""


class MiracleError(Exception):
    """Base exception for Miracle IPC errors"""
    pass


class MiracleConfigurationError(MiracleError):
    """Raised when configuration is missing or invalid"""
    pass


class MiracleConnectionError(MiracleError):
    """Raised when an operation needs a connection that is not open"""
    pass


class MiracleProtocolError(MiracleError):
    """Raised when the byte stream does not start with a valid frame header"""
    pass


class MiracleDecodeError(MiracleError):
    """Raised when a payload cannot be decoded into a typed value"""
    pass
