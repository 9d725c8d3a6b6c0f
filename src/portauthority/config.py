"""
PortAuthority configuration.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from portauthority.lldp.decoder import LookupStrategy


DEFAULT_PROVISIONING_URL = "https://netcenter.studentaffairs.ohio-state.edu/portmapper/port_authority.php"


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "yes", "1")


@dataclass
class PortAuthorityConfig:
    """Configuration for capture and reporting."""
    # Provisioning server
    provisioning_url: str = DEFAULT_PROVISIONING_URL
    verify_ssl: bool = True
    http_timeout: float = 30.0  # seconds
    user_agent: str = "portauthority/1.0"

    # Capture
    open_timeout_ms: int = 4000
    read_timeout: float = 30.0  # seconds, LLDP default tx interval
    lookup_strategy: LookupStrategy = LookupStrategy.AUTO

    # Form encoding
    encode_form_values: bool = False

    @classmethod
    def from_file(cls, path: str | Path) -> "PortAuthorityConfig":
        """Load configuration from file.

        Supports JSON and simple key=value format.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        content = path.read_text()

        # Try JSON first
        try:
            data = json.loads(content)
            return cls.from_dict(data)
        except json.JSONDecodeError:
            pass

        # Parse key=value format
        data = {}
        for line in content.split("\n"):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, value = line.split("=", 1)
                data[key.strip()] = value.strip().strip('"').strip("'")

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PortAuthorityConfig":
        """Create config from dictionary."""
        defaults = cls()
        strategy = data.get("lookup_strategy", defaults.lookup_strategy)
        return cls(
            provisioning_url=data.get("provisioning_url", data.get("url", defaults.provisioning_url)),
            verify_ssl=_as_bool(data.get("verify_ssl"), defaults.verify_ssl),
            http_timeout=float(data.get("http_timeout", defaults.http_timeout)),
            user_agent=data.get("user_agent", defaults.user_agent),
            open_timeout_ms=int(data.get("open_timeout_ms", defaults.open_timeout_ms)),
            read_timeout=float(data.get("read_timeout", defaults.read_timeout)),
            lookup_strategy=LookupStrategy.parse(strategy),
            encode_form_values=_as_bool(data.get("encode_form_values"), defaults.encode_form_values),
        )

    @classmethod
    def from_env(cls) -> "PortAuthorityConfig":
        """Create config from environment variables."""
        data: dict[str, Any] = {}
        env_map = {
            "PORTAUTHORITY_URL": "provisioning_url",
            "PORTAUTHORITY_VERIFY_SSL": "verify_ssl",
            "PORTAUTHORITY_HTTP_TIMEOUT": "http_timeout",
            "PORTAUTHORITY_OPEN_TIMEOUT_MS": "open_timeout_ms",
            "PORTAUTHORITY_READ_TIMEOUT": "read_timeout",
            "PORTAUTHORITY_LOOKUP": "lookup_strategy",
            "PORTAUTHORITY_ENCODE_VALUES": "encode_form_values",
        }
        for env_name, key in env_map.items():
            value = os.environ.get(env_name)
            if value is not None and value != "":
                data[key] = value
        return cls.from_dict(data)

    def validate(self) -> list[str]:
        """Validate configuration. Returns list of errors."""
        errors = []

        if not self.provisioning_url:
            errors.append("Provisioning URL required")
        elif not self.provisioning_url.startswith(("http://", "https://")):
            errors.append(f"Provisioning URL must be http(s): {self.provisioning_url}")

        if self.open_timeout_ms <= 0:
            errors.append("open_timeout_ms must be positive")
        if self.read_timeout <= 0:
            errors.append("read_timeout must be positive")
        if self.http_timeout <= 0:
            errors.append("http_timeout must be positive")

        return errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "provisioning_url": self.provisioning_url,
            "verify_ssl": self.verify_ssl,
            "http_timeout": self.http_timeout,
            "user_agent": self.user_agent,
            "open_timeout_ms": self.open_timeout_ms,
            "read_timeout": self.read_timeout,
            "lookup_strategy": self.lookup_strategy.value,
            "encode_form_values": self.encode_form_values,
        }
