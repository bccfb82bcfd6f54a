"""
Connection configuration.

The Miracle IPC socket path is published by the compositor in the MIRACLESOCK
environment variable. A YAML file may be used instead, e.g.:

    socket_path: /run/user/1000/miracle-ipc.sock
    print_traffic: true
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Self

import yaml

from .exceptions import MiracleConfigurationError


class ConfigConst:
    """Constants for configuration"""
    SOCKET_ENV_VAR = "MIRACLESOCK"
    DEFAULT_READ_CHUNK_SIZE = 65536


@dataclass
class MiracleConfig:
    """Settings needed to open a connection"""
    socket_path: str
    print_traffic: bool = False
    read_chunk_size: int = ConfigConst.DEFAULT_READ_CHUNK_SIZE

    def __post_init__(self):
        if not isinstance(self.socket_path, str) or not self.socket_path:
            raise MiracleConfigurationError("socket_path must be a non-empty string")
        # bool is an int subclass in Python but not in YAML
        if isinstance(self.read_chunk_size, bool) or not isinstance(self.read_chunk_size, int) or self.read_chunk_size <= 0:
            raise MiracleConfigurationError(f"read_chunk_size must be a positive integer, got {self.read_chunk_size!r}")

    @staticmethod
    def socket_path_from_env(environ: Optional[Mapping[str, str]] = None) -> str:
        """Return the socket path from MIRACLESOCK, raising if it is unset or empty"""
        environ = os.environ if environ is None else environ
        socket_path = environ.get(ConfigConst.SOCKET_ENV_VAR)
        if not socket_path:
            raise MiracleConfigurationError(f"{ConfigConst.SOCKET_ENV_VAR} environment variable is not set")
        return socket_path

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Self:
        return cls(socket_path=cls.socket_path_from_env(environ))

    @classmethod
    def from_yaml(cls, path: str, environ: Optional[Mapping[str, str]] = None) -> Self:
        """
        Load settings from a YAML mapping.

        socket_path falls back to MIRACLESOCK when the file does not set it.
        """
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except OSError as e:
            raise MiracleConfigurationError(f"Cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise MiracleConfigurationError(f"Invalid YAML in config file {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise MiracleConfigurationError(f"Config file {path} must contain a mapping")

        unknown = set(data) - {"socket_path", "print_traffic", "read_chunk_size"}
        if unknown:
            raise MiracleConfigurationError(f"Unknown config keys in {path}: {', '.join(sorted(unknown))}")

        socket_path = data.get("socket_path") or cls.socket_path_from_env(environ)
        print_traffic = data.get("print_traffic", False)
        if not isinstance(print_traffic, bool):
            raise MiracleConfigurationError("print_traffic must be true or false")
        return cls(
            socket_path=socket_path,
            print_traffic=print_traffic,
            read_chunk_size=data.get("read_chunk_size", ConfigConst.DEFAULT_READ_CHUNK_SIZE),
        )
