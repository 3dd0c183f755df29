"""CLI interface for chef-apply"""

import logging
import sys
from typing import Any, Tuple

import click

from chef_apply.config import Config
from chef_apply.runner import ActionRunner
from chef_apply.telemeter import get_telemeter

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

EVENT_MESSAGES = {
    "already_installed": "chef-client is already installed",
    "uploading": "Uploading installer package",
    "installing": "Installing chef-client",
    "install_complete": "chef-client installed",
    "creating_remote_workdir": "Creating remote working directory",
    "uploading_files": "Uploading config and policy",
    "converging": "Converging",
    "success": "Converge succeeded",
}


def report_event(hostname: str, event: str, args: Tuple[Any, ...]) -> None:
    """Echo an action notification for one target"""
    if event == "error":
        click.echo(f"[{hostname}] ✗ {args[0] if args else 'unknown error'}")
    elif event == "converge_failed":
        click.echo(f"[{hostname}] ✗ chef-client exited with code {args[0]}")
    else:
        click.echo(f"[{hostname}] {EVENT_MESSAGES.get(event, event)}")


def _load_config(config: str, action: str) -> Config:
    cfg = Config(config)
    if not cfg.validate(action):
        raise click.ClickException("Configuration validation failed")
    return cfg


def _finish(cfg: Config, ok: bool, success_message: str) -> None:
    telemeter = get_telemeter()
    if cfg.telemetry_enabled:
        telemeter.dump(cfg.telemetry_session_file)

    if ok:
        click.echo(f"\n✓ {success_message}")
        sys.exit(0)
    click.echo("\n✗ One or more targets failed")
    sys.exit(1)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug mode with verbose output",
)
@click.version_option(package_name="chef-apply")
@click.pass_context
def cli(ctx, debug):
    """chef-apply - apply chef actions to remote hosts

    Install chef-client on targets and converge them with a local policy.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    if debug:
        logging.getLogger().setLevel(logging.DEBUG)


def _common_options(func):
    func = click.option(
        "--max-concurrent",
        type=int,
        default=3,
        show_default=True,
        help="Maximum number of targets worked on at once (1-10)",
    )(func)
    func = click.option(
        "--skip-host-verification",
        is_flag=True,
        help="Skip SSH host key verification (insecure, only for testing)",
    )(func)
    func = click.option(
        "--local",
        is_flag=True,
        help="Apply to this machine instead of the configured targets",
    )(func)
    func = click.option(
        "-c",
        "--config",
        required=True,
        type=click.Path(exists=True),
        help="Path to configuration YAML file",
    )(func)
    return func


def _build_runner(cfg: Config, local: bool, skip_host_verification: bool, max_concurrent: int) -> ActionRunner:
    telemeter = get_telemeter()
    telemeter.enabled = cfg.telemetry_enabled
    return ActionRunner(
        cfg,
        local=local,
        skip_host_verification=skip_host_verification,
        max_concurrent=max(1, min(10, max_concurrent)),
        telemeter=telemeter,
        reporter=report_event,
    )


@cli.command()
@_common_options
@click.option(
    "--force",
    is_flag=True,
    help="Install even if chef-client is already present",
)
def install(config: str, local: bool, skip_host_verification: bool, max_concurrent: int, force: bool):
    """Install chef-client on targets

    Examples:
        chef-apply install -c config.yaml
        chef-apply install -c config.yaml --force
    """
    try:
        cfg = _load_config(config, "install")
        runner = _build_runner(cfg, local, skip_host_verification, max_concurrent)
        ok = runner.install(force=force)
    except click.ClickException:
        raise
    except Exception as e:
        click.echo(f"\n✗ Error: {e}")
        sys.exit(1)
    _finish(cfg, ok, "chef-client installed on all targets")


@cli.command()
@_common_options
def converge(config: str, local: bool, skip_host_verification: bool, max_concurrent: int):
    """Converge targets with the configured policy

    Examples:
        chef-apply converge -c config.yaml
        chef-apply converge -c config.yaml --local
    """
    try:
        cfg = _load_config(config, "converge")
        runner = _build_runner(cfg, local, skip_host_verification, max_concurrent)
        ok = runner.converge()
    except click.ClickException:
        raise
    except Exception as e:
        click.echo(f"\n✗ Error: {e}")
        sys.exit(1)
    _finish(cfg, ok, "All targets converged")


@cli.command()
@click.option(
    "-c",
    "--config",
    required=True,
    type=click.Path(exists=True),
    help="Path to configuration YAML file",
)
def validate(config: str):
    """Validate configuration file

    Examples:
        chef-apply validate -c config.yaml
    """
    try:
        cfg = Config(config)

        if not cfg.validate():
            click.echo("✗ Configuration validation failed")
            sys.exit(1)

        click.echo("✓ Configuration is valid")
        click.echo(f"  Targets: {len(cfg.targets)}")
        package = cfg.install_options["local_package"]
        if package:
            click.echo(f"  Installer package: {package}")
        if cfg.converge_options["local_policy"]:
            click.echo(f"  Policy: {cfg.converge_options['local_policy']}")

        sys.exit(0)

    except Exception as e:
        click.echo(f"✗ Error: {e}")
        sys.exit(1)


def main():
    """Entry point for CLI"""
    cli()


if __name__ == "__main__":
    main()
