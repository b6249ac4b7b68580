"""samlsession CLI - Inspect cookie policy and the module system.

Commands:
    cookie-params  - Resolved session cookie parameters
    modules list   - Installed modules and their enabled state
    modules hook   - Dispatch a hook to all enabled modules
"""

import json
import logging
from typing import Optional

import click

from . import __version__
from .config import ConfigError, ConfigLoader
from .faults import Fault
from .modules import ModuleRegistry
from .sessions.policy import CookiePolicy, RuntimeCapabilities


@click.group()
@click.version_option(version=__version__, prog_name="samlsession")
@click.option('--config', '-c', 'config_paths', multiple=True, help='Config file (YAML or JSON), repeatable')
@click.option('--env-file', type=click.Path(dir_okay=False), help='.env file with SAMLSESS_* variables')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, config_paths: tuple, env_file: Optional[str], verbose: bool):
    """Session handler tooling."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    ctx.ensure_object(dict)
    try:
        ctx.obj['config'] = ConfigLoader.load(paths=list(config_paths), env_file=env_file)
    except ConfigError as e:
        raise click.ClickException(str(e))


@cli.command('cookie-params')
@click.pass_context
def cookie_params(ctx):
    """Print the resolved session cookie parameters as JSON."""
    config = ctx.obj['config']
    try:
        params = CookiePolicy.resolve(config, RuntimeCapabilities.from_config(config))
    except Fault as e:
        raise click.ClickException(str(e))
    click.echo(json.dumps(params.to_dict(), indent=2))


@cli.group()
@click.option('--base-dir', default='modules', show_default=True,
              type=click.Path(file_okay=False), help='Built-in modules directory')
@click.option('--strict', is_flag=True, help='Report modules without a default marker')
@click.pass_context
def modules(ctx, base_dir: str, strict: bool):
    """Module discovery and hooks."""
    ctx.obj['registry'] = ModuleRegistry(ctx.obj['config'], base_dir=base_dir, strict=strict)


@modules.command('list')
@click.pass_context
def modules_list(ctx):
    """List modules and whether they are enabled."""
    registry = ctx.obj['registry']
    try:
        names = registry.get_modules()
        rows = [(name, registry.is_enabled(name)) for name in sorted(names)]
    except Fault as e:
        raise click.ClickException(str(e))
    
    for name, enabled in rows:
        state = click.style("enabled", fg="green") if enabled else click.style("disabled", dim=True)
        click.echo(f"{name:<32} {state}")


@modules.command('hook')
@click.argument('name')
@click.option('--data', default='{}', show_default=True, help='JSON data passed to the hooks')
@click.pass_context
def modules_hook(ctx, name: str, data: str):
    """Call hook NAME in all enabled modules and print the resulting data."""
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"invalid JSON: {e}", param_hint='--data')
    
    try:
        result = ctx.obj['registry'].call_hooks(name, payload)
    except Fault as e:
        raise click.ClickException(str(e))
    click.echo(json.dumps(result, indent=2, default=str))


def main():
    """Console script entry point."""
    cli(obj={})


if __name__ == '__main__':
    main()
