"""
============================================================================
REACHABILITY MONITOR - VALIDATORS UTILITY
============================================================================
Host and target validation used when targets are loaded.
============================================================================
"""

import ipaddress
from typing import TYPE_CHECKING

import validators as external_validators

from exceptions.validation import InvalidTargetError

if TYPE_CHECKING:
    from monitoring.models import Target


# ============================================================================
# HOST VALIDATORS
# ============================================================================

class HostValidator:
    """
    Validation of the host part of a target: IP literal, DNS name, or
    a bare single-label name such as ``localhost``.
    """

    @staticmethod
    def is_valid_ip(host: str) -> bool:
        try:
            ipaddress.ip_address(host)
            return True
        except ValueError:
            return False

    @staticmethod
    def is_valid_domain(host: str) -> bool:
        # validators returns a ValidationError object (falsy) instead of raising
        return external_validators.domain(host) is True

    @staticmethod
    def is_valid_label(host: str) -> bool:
        """Single-label names resolvable through /etc/hosts or search domains."""
        return (
            0 < len(host) <= 63
            and host.replace("-", "").isalnum()
            and not host.startswith("-")
            and not host.endswith("-")
        )

    @classmethod
    def is_valid_host(cls, host: str) -> bool:
        if not host or not host.strip():
            return False
        host = host.strip()
        return (
            cls.is_valid_ip(host)
            or cls.is_valid_domain(host)
            or cls.is_valid_label(host)
        )


# ============================================================================
# TARGET VALIDATOR
# ============================================================================

class TargetValidator:
    """
    Validates a Target before the monitoring loop starts.
    """

    @staticmethod
    def validate(target: "Target") -> "Target":
        """
        Raises:
            InvalidTargetError: empty or malformed host, empty name, bad port.
        """
        if not target.host or not target.host.strip():
            raise InvalidTargetError(
                "Target host must not be empty",
                host=target.host,
                reason="empty_host",
            )

        if not HostValidator.is_valid_host(target.host):
            raise InvalidTargetError(
                f"Target host {target.host!r} is not a valid hostname or IP address",
                host=target.host,
                reason="invalid_host",
            )

        if not target.name or not target.name.strip():
            raise InvalidTargetError(
                "Target name must not be empty",
                host=target.host,
                reason="empty_name",
                field="name",
            )

        if target.port is not None and not (1 <= target.port <= 65535):
            raise InvalidTargetError(
                f"Target port {target.port} is out of range",
                host=target.host,
                reason="invalid_port",
                field="port",
            )

        return target
