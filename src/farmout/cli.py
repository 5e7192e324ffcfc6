"""CLI interface for farmout"""

import logging
import sys

import click
import yaml

from farmout.core.config import Config
from farmout.core.dispatcher import Dispatcher
from farmout.errors import FarmoutError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

config_option = click.option(
    "-c",
    "--config",
    envvar="FARMOUT_CONFIG",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to configuration YAML file (default: ~/.remote_test)",
)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug mode with verbose output",
)
@click.version_option(package_name="farmout")
@click.pass_context
def cli(ctx, debug):
    """farmout - run tests on remote hosts

    Mirrors the local testing root to every configured host with rsync and
    runs each test over ssh, round-robin across hosts.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    if debug:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command()
@config_option
@click.option(
    "-j",
    "--jobs",
    type=int,
    default=1,
    show_default=True,
    help="Concurrent tests per host",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose logging and show output of every test",
)
@click.option(
    "--settle-delay",
    type=float,
    default=2.0,
    show_default=True,
    help="Seconds to wait after starting master connections",
)
@click.argument("tests", nargs=-1, required=True)
@click.pass_context
def run(ctx, config: str, jobs: int, verbose: bool, settle_delay: float, tests: tuple):
    """Run tests on the remote hosts

    Examples:
        farmout run t/test_basic.py t/test_api.py
        farmout run -j 2 -c ~/.remote_test.ci t/*.py
    """
    from farmout.harness.remote import RemoteHarness

    if verbose or ctx.obj.get("debug"):
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        cfg = Config(config).load()
        with RemoteHarness(cfg, jobs=jobs, settle_delay=settle_delay) as harness:
            results = harness.runtests(list(tests))
    except FarmoutError as e:
        click.echo(f"\n✗ Error: {e}")
        sys.exit(1)
    except Exception as e:
        click.echo(f"\n✗ Error: {e}")
        if verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)

    failed = [result for result in results if not result.passed]
    for result in results:
        mark = "✓" if result.passed else "✗"
        click.echo(f"{mark} {result.test}")
        if result.output and (verbose or not result.passed):
            click.echo(result.output.rstrip())

    click.echo(f"\n{len(results) - len(failed)}/{len(results)} test(s) passed")
    sys.exit(1 if failed else 0)


@cli.command()
@config_option
def validate(config: str):
    """Validate configuration and the current directory

    Examples:
        farmout validate
        farmout validate -c ~/.remote_test.ci
    """
    try:
        cfg = Config(config).load()
        Dispatcher(cfg).validate()

        click.echo("✓ Configuration is valid")
        click.echo(f"  Hosts: {len(cfg.hosts)}")
        click.echo(f"  Local root: {cfg.local_root}")
        click.echo(f"  Remote root: {cfg.remote_root}")
        click.echo(f"  Master connections: {'on' if cfg.master else 'off'}")
        sys.exit(0)

    except FarmoutError as e:
        click.echo(f"✗ Error: {e}")
        sys.exit(1)


@cli.command()
@config_option
@click.argument("key", required=False)
def show(config: str, key: str):
    """Show the normalized configuration, or a single KEY

    Examples:
        farmout show
        farmout show host
    """
    try:
        cfg = Config(config).load()
    except FarmoutError as e:
        click.echo(f"✗ Error: {e}")
        sys.exit(1)

    if key:
        value = cfg.get(key)
        if value is None:
            click.echo(f"✗ Unknown or unset key: {key}")
            sys.exit(1)
        if isinstance(value, list):
            value = " ".join(value)
        click.echo(value)
    else:
        click.echo(f"# {cfg.config_file}")
        click.echo(yaml.safe_dump(cfg.as_dict(), default_flow_style=False).rstrip())
    sys.exit(0)


@cli.command()
@config_option
@click.option(
    "--ssh-config",
    type=click.Path(dir_okay=False),
    default=None,
    help="SSH config file used to resolve host aliases (default: ~/.ssh/config)",
)
def check(config: str, ssh_config: str):
    """Check every host is reachable and ready to run tests

    Logs in to each host and verifies the remote root and interpreter.

    Examples:
        farmout check
    """
    from farmout.transport.probe import HostProbe

    try:
        cfg = Config(config).load()
    except FarmoutError as e:
        click.echo(f"✗ Error: {e}")
        sys.exit(1)

    probe = HostProbe(ssh_config=ssh_config)
    all_ok = True
    for target in cfg.targets:
        ok, message = probe.probe(target, cfg.remote_root, cfg.remote_executable)
        mark = "✓" if ok else "✗"
        click.echo(f"{mark} {target.userhost}: {message}")
        all_ok = all_ok and ok

    sys.exit(0 if all_ok else 1)


def main():
    """Entry point for CLI"""
    cli()


if __name__ == "__main__":
    main()
