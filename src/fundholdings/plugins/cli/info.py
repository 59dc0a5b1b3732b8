"""
CLI command: info

Displays the package version, the registered providers and the active
timing policy.
"""

import logging
from importlib.metadata import PackageNotFoundError, version

import click

from fundholdings.providers import build_default_registry, get_provider_display_name
from fundholdings.settings import settings

# Configure module-level logger
logger = logging.getLogger("fundholdings.cli.info")


@click.command("info")
def cli() -> None:
    """
    Show package metadata, registered providers and settings.
    """
    # Retrieve package version, fallback if not installed
    try:
        pkg_version = version("fundholdings")
        logger.debug("Retrieved package version: %s", pkg_version)
    except PackageNotFoundError:
        pkg_version = "0.0.0-dev"
        logger.warning(
            "Package 'fundholdings' not found; using development version placeholder."
        )

    click.echo(f"FundHoldings version: {pkg_version}")

    # List providers, highest priority first
    click.echo("\nRegistered providers:")
    registry = build_default_registry(settings)
    for fetcher in registry.by_priority():
        coverage = "full holdings" if fetcher.supports_full_holdings else "top holdings only"
        click.echo(
            f"  - {fetcher.name} ({get_provider_display_name(fetcher.name)}): "
            f"priority {fetcher.priority}, {coverage}"
        )

    click.echo("\nSettings:")
    click.echo(f"  Cache path: {settings.cache_path}")
    click.echo(f"  Attempt timeout: {settings.attempt_timeout}s")
    click.echo(f"  Inter-attempt delay: {settings.inter_attempt_delay}s")
    click.echo(f"  Inter-fund delay: {settings.inter_fund_delay}s")
    click.echo(f"  Max retries: {settings.max_retries}")
    click.echo(f"  Max concurrent funds: {settings.max_concurrent_funds}")
    click.echo(f"  Log level: {settings.log_level}")
