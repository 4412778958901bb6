"""
=============================================================================
TUNNEL CONFIGURATION
=============================================================================

Everything needed to open one tunnel, in one typed place.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m httptunnel --proxy squid:3128 host 22            │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTPTUNNEL_PROXY_HOST=squid python -m httptunnel ...       │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The proxy password may come from the environment, but it never shows up in
repr() or logs. If it isn't configured at all, the negotiator first tries
without credentials and then (if allowed) prompts.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class TunnelConfig:
    """
    Configuration for one CONNECT tunnel.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    PROXY           proxy_host, proxy_port
    TARGET          target_host, target_port
    AUTH            username, password, interactive
    SOCKET          buffer_size, timeout
    LOGGING         log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # PROXY
    # ─────────────────────────────────────────────────────────────────────

    proxy_host: str = "127.0.0.1"
    proxy_port: int = 8080

    # ─────────────────────────────────────────────────────────────────────
    # TARGET (what the tunnel should lead to)
    # ─────────────────────────────────────────────────────────────────────

    target_host: str = ""
    target_port: int = 0

    # ─────────────────────────────────────────────────────────────────────
    # AUTHENTICATION
    # ─────────────────────────────────────────────────────────────────────

    username: str = ""
    password: str = field(default="", repr=False)

    interactive: bool = True
    """
    Whether a human may be asked for credentials when the proxy rejects
    what we have. False makes a second 407 fatal.
    """

    # ─────────────────────────────────────────────────────────────────────
    # SOCKET
    # ─────────────────────────────────────────────────────────────────────

    buffer_size: int = 8192
    """Size of each recv() from the proxy, in bytes."""

    timeout: Optional[float] = 30.0
    """
    Socket timeout in seconds while connecting and negotiating.
    None = blocking. The negotiator itself has no timers.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "WARNING"
    log_format: str = "text"

    @property
    def has_credentials(self) -> bool:
        return bool(self.username or self.password)

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "TunnelConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTPTUNNEL_PROXY_HOST    Proxy host (default: 127.0.0.1)
        HTTPTUNNEL_PROXY_PORT    Proxy port (default: 8080)
        HTTPTUNNEL_TARGET_HOST   Tunnel destination host
        HTTPTUNNEL_TARGET_PORT   Tunnel destination port
        HTTPTUNNEL_USERNAME      Proxy username
        HTTPTUNNEL_PASSWORD      Proxy password
        HTTPTUNNEL_TIMEOUT       Socket timeout in seconds (default: 30)
        HTTPTUNNEL_LOG_LEVEL     Logging level (default: WARNING)

        =====================================================================
        """
        env = os.environ if environ is None else environ
        return cls(
            proxy_host=env.get("HTTPTUNNEL_PROXY_HOST", "127.0.0.1"),
            proxy_port=int(env.get("HTTPTUNNEL_PROXY_PORT", "8080")),
            target_host=env.get("HTTPTUNNEL_TARGET_HOST", ""),
            target_port=int(env.get("HTTPTUNNEL_TARGET_PORT", "0")),
            username=env.get("HTTPTUNNEL_USERNAME", ""),
            password=env.get("HTTPTUNNEL_PASSWORD", ""),
            timeout=float(env.get("HTTPTUNNEL_TIMEOUT", "30")),
            log_level=env.get("HTTPTUNNEL_LOG_LEVEL", "WARNING"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Fail fast: a typo in a port number should stop us before we dial
        anything, not halfway through negotiation.
        """
        if not self.proxy_host:
            raise ValueError("proxy_host must not be empty")

        if not 0 < self.proxy_port < 65536:
            raise ValueError(f"Invalid proxy port: {self.proxy_port}. Must be 1-65535.")

        if not self.target_host:
            raise ValueError("target_host must not be empty")

        if not 0 < self.target_port < 65536:
            raise ValueError(f"Invalid target port: {self.target_port}. Must be 1-65535.")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Unknown log format: {self.log_format}")
