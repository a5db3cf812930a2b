"""CLI commands for inspecting a ConfigCat config."""

import json
import logging
import sys

import click
import structlog

from configcat.client import ConfigCatClient
from configcat.constants import COMPONENT_CLI, SDK_VERSION
from configcat.errors import MissingSdkKeyError
from configcat.fetch.redact import mask_sdk_key
from configcat.fetch.transport import HttpxGetter
from configcat.observability.logging import bind_client_context, configure_logging
from configcat.policy.models import ManualPolicy
from configcat.settings import get_settings


logger = structlog.get_logger()


def _open_client(
    sdk_key: str | None,
    base_url: str | None,
    verbose: bool,
) -> ConfigCatClient:
    """Start a manual-policy client and fetch the config once.

    Exits with status 1 when the SDK key is missing or the fetch fails.

    Args:
        sdk_key: SDK key from the command line, if given.
        base_url: Base URL from the command line, if given.
        verbose: Enable debug logging.

    Returns:
        A client holding a freshly fetched config.
    """
    configure_logging(
        level=logging.DEBUG if verbose else logging.WARNING,
        json_format=False,
    )
    settings = get_settings()
    key = sdk_key or settings.sdk_key

    try:
        client = ConfigCatClient(
            key,
            fetch_policy=ManualPolicy(),
            base_url=base_url or settings.base_url,
            http_getter=HttpxGetter(settings.request_timeout_seconds),
        )
    except MissingSdkKeyError:
        click.echo(
            "Error: SDK key is required (--sdk-key or CONFIGCAT_SDK_KEY)", err=True
        )
        sys.exit(1)

    bind_client_context(mask_sdk_key(client.options.sdk_key))
    result = client.force_refresh()
    if not result.is_success:
        message = result.error.message if result.error else result.outcome.value
        click.echo(f"Error: config refresh failed: {message}", err=True)
        client.close()
        sys.exit(1)

    logger.debug("cli_config_loaded", component=COMPONENT_CLI)
    return client


sdk_key_option = click.option(
    "--sdk-key",
    "sdk_key",
    default=None,
    help="SDK key (default: CONFIGCAT_SDK_KEY).",
)
base_url_option = click.option(
    "--base-url",
    "base_url",
    default=None,
    help="CDN base URL override (default: CONFIGCAT_BASE_URL).",
)
verbose_option = click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)


@click.group()
@click.version_option(version=SDK_VERSION)
def cli() -> None:
    """ConfigCat config inspection CLI."""


@cli.command()
@click.argument("key")
@click.option(
    "--default",
    "default_value",
    default=None,
    help="Value printed when the flag is not found.",
)
@sdk_key_option
@base_url_option
@verbose_option
def value(
    key: str,
    default_value: str | None,
    sdk_key: str | None,
    base_url: str | None,
    verbose: bool,
) -> None:
    """Print the value of flag KEY as JSON."""
    with _open_client(sdk_key, base_url, verbose) as client:
        click.echo(json.dumps(client.get_value(key, default_value)))


@cli.command()
@sdk_key_option
@base_url_option
@verbose_option
def keys(sdk_key: str | None, base_url: str | None, verbose: bool) -> None:
    """List every flag key in the config."""
    with _open_client(sdk_key, base_url, verbose) as client:
        for flag_key in client.get_all_keys():
            click.echo(flag_key)


@cli.command()
@sdk_key_option
@base_url_option
@verbose_option
def refresh(sdk_key: str | None, base_url: str | None, verbose: bool) -> None:
    """Fetch the config once and report the outcome."""
    with _open_client(sdk_key, base_url, verbose) as client:
        click.echo("Config fetched successfully.")
        click.echo(f"  Flags: {len(client.get_all_keys())}")
