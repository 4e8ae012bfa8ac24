"""
httpdriver - CLI Main Entry Point
"""

import sys
from typing import Optional

import click

from httpdriver import __version__
from httpdriver.cli.utils import (
    error,
    info,
    parse_field,
    parse_header,
    print_key_value,
    success,
)
from httpdriver.config import Settings
from httpdriver.driver import Driver, build_driver
from httpdriver.exceptions import ConfigurationError, TransportError
from httpdriver.identity.context import DEFAULT_TLS_ALGORITHM, build_ssl_context
from httpdriver.observability.logging import configure_from_settings


def _load_settings(config_file: Optional[str]) -> Settings:
    if config_file:
        return Settings.from_file(config_file)
    return Settings.from_env()


def _open_driver(config_file: Optional[str]) -> Driver:
    """Load settings and build a driver, exiting with status 1 on failure."""
    try:
        settings = _load_settings(config_file)
        configure_from_settings(settings.logging, stream=sys.stderr)
        return build_driver(settings.driver)
    except ConfigurationError as e:
        error(f"Invalid configuration: {e}")
        sys.exit(1)


def _headers_callback(ctx, param, values):
    return dict(parse_header(v) for v in values) or None


def _fields_callback(ctx, param, values):
    return [parse_field(v) for v in values]


@click.group()
@click.version_option(version=__version__, prog_name="httpdriver")
def cli():
    """
    httpdriver - Command Line Interface

    Call peer services over mutually authenticated TLS with
    connection pooling and bounded retry.
    """
    pass


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
def validate(config_file):
    """
    Validate a driver configuration file.

    Checks:
    - YAML syntax
    - Field ranges and cross-field rules
    - Truststore, certificate and key can be loaded
    - TLS algorithm is recognized
    """
    info(f"Validating configuration: {config_file}")

    try:
        settings = Settings.from_file(config_file)
        build_ssl_context(settings.driver)
    except ConfigurationError as e:
        error(str(e))
        sys.exit(1)

    driver_config = settings.driver
    success("Configuration is valid")
    print_key_value(
        {
            "Truststore": driver_config.truststore_path or "(system default)",
            "Mutual TLS": "yes" if driver_config.mutual_tls else "no",
            "TLS algorithm": driver_config.tls_algorithm or DEFAULT_TLS_ALGORITHM,
            "Pool per route": driver_config.max_pool_per_route,
            "Pool total": driver_config.max_pool_total,
            "Attempts": driver_config.max_retry_attempts,
            "Retry interval": f"{driver_config.retry_interval_ms}ms",
            "Connect timeout": f"{driver_config.connect_timeout_ms}ms",
            "Read timeout": f"{driver_config.read_timeout_ms}ms",
        },
        title="Driver",
    )


@cli.command()
@click.argument("url")
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True),
    help="YAML configuration file (environment is used when omitted)",
)
@click.option(
    "--header",
    "-H",
    "headers",
    multiple=True,
    callback=_headers_callback,
    help="Request header as 'Name: value' (repeatable)",
)
def get(url, config_file, headers):
    """
    Send a GET request and print the body.

    Prints nothing when the peer answers with a non-200 status.
    """
    driver = _open_driver(config_file)

    try:
        with driver:
            body = driver.do_get(url, headers=headers)
    except TransportError as e:
        error(f"Request failed: {e}")
        sys.exit(1)

    click.echo(body)


@cli.command()
@click.argument("url")
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True),
    help="YAML configuration file (environment is used when omitted)",
)
@click.option(
    "--data",
    "-d",
    "fields",
    multiple=True,
    callback=_fields_callback,
    help="Form field as 'key=value' (repeatable)",
)
@click.option(
    "--raw",
    is_flag=True,
    help="Print the status code and body of any response",
)
def post(url, config_file, fields, raw):
    """
    Send a form POST and print the body.
    """
    driver = _open_driver(config_file)

    try:
        with driver:
            if raw:
                response = driver.do_post_http_response(url, fields)
            else:
                body = driver.do_post(url, fields)
    except TransportError as e:
        error(f"Request failed: {e}")
        sys.exit(1)

    if raw:
        click.echo(f"Status: {response.status_code}")
        click.echo(response.message)
    else:
        click.echo(body)


def main():
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
