"""
=============================================================================
HTTPTUNNEL CLI ENTRY POINT
=============================================================================

Opens a CONNECT tunnel through an HTTP proxy and relays stdin/stdout over
it, which is exactly what an SSH ProxyCommand needs.

=============================================================================
USAGE
=============================================================================

    # Tunnel to example.com:22 through squid on port 3128
    python -m httptunnel --proxy squid:3128 example.com 22

    # As an SSH ProxyCommand
    ssh -o ProxyCommand='python -m httptunnel --proxy squid:3128 %h %p' host

    # Configured credentials (tried only if the proxy asks)
    python -m httptunnel --proxy squid:3128 --user alice example.com 22

    # Never prompt; fail if the configured credentials are not enough
    python -m httptunnel --proxy squid:3128 --no-prompt example.com 22

    # Same settings from the environment
    HTTPTUNNEL_PROXY_HOST=squid HTTPTUNNEL_PROXY_PORT=3128 \\
        python -m httptunnel example.com 22

=============================================================================
EXIT CODES
=============================================================================

    0     tunnel opened and relay finished
    1     negotiation failed or proxy unreachable (reason on stderr)
    2     bad arguments
    130   user cancelled the credential prompt

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional, Tuple

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, TunnelConfig
from .core.connection import open_tunnel
from .core.relay import relay
from .errors import NegotiationAborted, ProxyNegotiationError
from .log import setup_logging
from .prompts import ConsolePromptBridge


logger = logging.getLogger(__name__)


def parse_host_port(value: str) -> Tuple[str, int]:
    """
    Parse "host:port" or "[v6addr]:port".

    Raises:
        argparse.ArgumentTypeError: If the value is malformed.
    """
    if value.startswith("["):
        host, sep, rest = value[1:].partition("]")
        if not sep or not rest.startswith(":"):
            raise argparse.ArgumentTypeError(f"expected [address]:port, got {value!r}")
        port_text = rest[1:]
    else:
        host, sep, port_text = value.rpartition(":")
        if not sep:
            raise argparse.ArgumentTypeError(f"expected host:port, got {value!r}")

    if not host:
        raise argparse.ArgumentTypeError(f"missing host in {value!r}")
    try:
        port = int(port_text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port in {value!r}")
    return host, port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httptunnel",
        description="Open a TCP tunnel through an HTTP proxy and relay stdin/stdout over it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m httptunnel --proxy squid:3128 example.com 22
  ssh -o ProxyCommand='python -m httptunnel --proxy squid:3128 %h %p' host
        """,
    )

    parser.add_argument("target_host", help="Host the tunnel should lead to")
    parser.add_argument("target_port", type=int, help="Port on the target host")

    # ─────────────────────────────────────────────────────────────────────
    # PROXY ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--proxy", "-x",
        type=parse_host_port,
        default=None,
        help="Proxy as HOST:PORT (default: $HTTPTUNNEL_PROXY_HOST:$HTTPTUNNEL_PROXY_PORT)",
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=None,
        help="Socket timeout while connecting and negotiating, in seconds (default: 30)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # AUTH ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--user", "-u", default=None, help="Proxy username")
    parser.add_argument(
        "--password",
        default=None,
        help="Proxy password (visible to other local users; prefer $HTTPTUNNEL_PASSWORD)",
    )
    parser.add_argument(
        "--no-prompt",
        action="store_true",
        help="Never ask for credentials interactively",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default="text",
        help="Log output format (default: text)",
    )
    parser.add_argument("--version", "-v", action="version", version=f"httptunnel {__version__}")

    return parser


def build_config(args: argparse.Namespace, base: Optional[TunnelConfig] = None) -> TunnelConfig:
    """Apply CLI arguments on top of environment-derived settings."""
    config = base if base is not None else TunnelConfig.from_env()

    config.target_host = args.target_host
    config.target_port = args.target_port
    if args.proxy is not None:
        config.proxy_host, config.proxy_port = args.proxy
    if args.timeout is not None:
        config.timeout = args.timeout
    if args.user is not None:
        config.username = args.user
    if args.password is not None:
        config.password = args.password
    if args.no_prompt:
        config.interactive = False
    if args.log_level is not None:
        config.log_level = args.log_level
    config.log_format = args.log_format
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
        config.validate()
    except ValueError as e:
        parser.error(str(e))

    setup_logging(config.log_level, config.log_format)

    try:
        sock, leftover = open_tunnel(config, ConsolePromptBridge())
    except NegotiationAborted:
        print("httptunnel: authentication cancelled", file=sys.stderr)
        return 130
    except ProxyNegotiationError as e:
        print(f"httptunnel: {e}", file=sys.stderr)
        return 1
    except (OSError, TimeoutError) as e:
        print(f"httptunnel: cannot reach proxy {config.proxy_host}:{config.proxy_port}: {e}",
              file=sys.stderr)
        return 1

    try:
        relay(sock, leftover, buffer_size=config.buffer_size)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        sock.close()
    return 0


# =============================================================================
# ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    sys.exit(main())
