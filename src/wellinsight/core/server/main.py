"""WellInsight server entry point — ``python -m wellinsight.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from wellinsight.core.config.settings import get_settings
from wellinsight.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host in {"localhost"}:
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the WellInsight MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.insights_log_level.upper(), logging.INFO)
    )

    logger = logging.getLogger(__name__)
    if not settings.insights_allow_insecure_bind and not _is_loopback_host(
        settings.insights_host
    ):
        raise RuntimeError(
            "Refusing to bind the insights server to a non-loopback host without an "
            "auth layer. Set INSIGHTS_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting WellInsight Health server on %s:%d",
        settings.insights_host,
        settings.insights_port,
    )

    mcp = create_app(settings=settings)
    mcp.run(
        transport="streamable-http",
        host=settings.insights_host,
        port=settings.insights_port,
    )


if __name__ == "__main__":
    run()
