"""Command-line interface for Order Desk."""

import sys
from pathlib import Path
from typing import Optional

import click

from .config.cli import config as config_group
from .config.manager import ConfigManager, ConfigValidationError, default_config_path
from .main import OrderDeskApplication, build_order_manager
from .order.errors import OrderDeskError
from .order.manager import OrderManager

config_option = click.option(
    '--config', '-c', 'config_path', default=default_config_path,
    help='Path to configuration file'
)


def _manager_or_exit(config_path: str) -> OrderManager:
    try:
        settings = ConfigManager(config_path).load_config()
        return build_order_manager(settings)
    except ConfigValidationError as e:
        click.echo(click.style(f"✗ Configuration error: {e.message}", fg='red'), err=True)
    except OrderDeskError as e:
        click.echo(click.style(f"✗ {e}", fg='red'), err=True)
    sys.exit(1)


@click.group()
@click.version_option(package_name='order-desk')
def cli():
    """Order Desk: order intake, summary and spreadsheet export."""
    pass


cli.add_command(config_group)


@cli.command()
@config_option
@click.option('--host', default=None, help='Interface to bind (overrides config)')
@click.option('--port', '-p', type=int, default=None, help='Port to listen on (overrides config)')
@click.option('--no-reload-config', is_flag=True, help='Do not watch the config file for changes')
def serve(config_path: str, host: Optional[str], port: Optional[int], no_reload_config: bool):
    """Run the HTTP API."""
    try:
        application = OrderDeskApplication(config_path, enable_hot_reload=not no_reload_config)
    except ConfigValidationError as e:
        click.echo(click.style(f"✗ Configuration error: {e.message}", fg='red'), err=True)
        sys.exit(1)
    except OrderDeskError as e:
        click.echo(click.style(f"✗ {e}", fg='red'), err=True)
        sys.exit(1)

    application.run(host=host, port=port)


@cli.group()
def orders():
    """Inspect and export stored orders."""
    pass


@orders.command()
@config_option
@click.option('--limit', '-n', type=int, default=None, help='Show only the most recent N orders')
def summary(config_path: str, limit: Optional[int]):
    """Show the order count and the most recent orders first."""
    manager = _manager_or_exit(config_path)
    try:
        result = manager.summary()
    except OrderDeskError as e:
        click.echo(click.style(f"✗ Failed to load orders: {e}", fg='red'), err=True)
        sys.exit(1)

    click.echo(f"Orders: {result.order_count}")
    recent = list(reversed(result.orders))
    if limit is not None:
        recent = recent[:limit]
    for order in recent:
        items = ', '.join(f"{item.name} x{item.quantity}" for item in order.items)
        click.echo(f"  {order.id}  {order.customer_name} <{order.email}>  {order.total}  [{items}]")


@orders.command()
@config_option
@click.option('--output', '-o', type=click.Path(dir_okay=False), default=None,
              help='Output file (defaults to a timestamped name in the current directory)')
def export(config_path: str, output: Optional[str]):
    """Write every order line to a spreadsheet file."""
    manager = _manager_or_exit(config_path)
    try:
        document = manager.export()
    except OrderDeskError as e:
        click.echo(click.style(f"✗ Export failed: {e}", fg='red'), err=True)
        sys.exit(1)

    output_path = Path(output or document.filename)
    output_path.write_text(document.content, encoding='utf-8')
    click.echo(click.style(f"✓ Exported {document.row_count} rows to {output_path}", fg='green'))


def main():
    cli()


if __name__ == '__main__':
    main()
