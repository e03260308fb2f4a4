"""Command-line interface for configuration management."""

import sys

import click
import yaml

from .manager import ConfigManager, ConfigValidationError, default_config_path


def _load_or_exit(config_path: str) -> dict:
    try:
        return ConfigManager(config_path).load_config()
    except ConfigValidationError as e:
        click.echo(click.style("✗ Configuration validation failed:", fg='red'))
        click.echo(f"  Error: {e.message}")
        if e.field_path:
            click.echo(f"  Field: {e.field_path}")
        if e.expected_type and e.actual_value is not None:
            click.echo(f"  Expected: {e.expected_type}, Got: {e.actual_value}")
        sys.exit(1)


@click.group()
def config():
    """Configuration management commands."""
    pass


@config.command()
@click.option('--config-path', '-c', default=default_config_path, help='Path to configuration file')
def validate(config_path: str):
    """Validate a configuration file."""
    click.echo(f"Validating configuration: {config_path}")
    settings = _load_or_exit(config_path)

    click.echo(click.style("✓ Configuration is valid", fg='green'))
    click.echo("\nConfiguration Summary:")
    click.echo(f"  Orders file: {settings['storage']['orders_file']}")
    click.echo(f"  Listen on: {settings['server']['host']}:{settings['server']['port']}")
    click.echo(f"  Static pages: {settings['server']['static_dir'] or 'None'}")
    click.echo(f"  Log level: {settings['logging']['log_level']}")
    click.echo(f"  Export prefix: {settings['export']['filename_prefix']}")


@config.command()
@click.option('--config-path', '-c', default=default_config_path, help='Path to configuration file')
def show(config_path: str):
    """Print the effective configuration, defaults and overrides included."""
    settings = _load_or_exit(config_path)
    click.echo(yaml.safe_dump(settings, sort_keys=False, allow_unicode=True), nl=False)
