"""CLI entry point for nfpair."""

from pathlib import Path

import click

from nfpair import __version__
from nfpair.address import normalize_address
from nfpair.config import Config, get_store_path, load_config
from nfpair.logging import setup_logging
from nfpair.pairing.codes import CODE_LENGTH, is_complete_code
from nfpair.pairing.messages import is_failure
from nfpair.server_store import JsonAddressStore


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config: Path | None, verbose: bool) -> None:
    """nfpair - Pair this device with a NotifyForwarders server."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config)
    ctx.obj["logger"] = setup_logging(ctx.obj["config"], verbose=verbose)


def _build_probe(config: Config):
    from nfpair.server import VersionProbe

    return VersionProbe(
        required_version=config.server.required_version,
        connect_timeout=config.server.connect_timeout,
        read_timeout=config.server.read_timeout,
    )


def _build_dispatcher(config: Config):
    from nfpair.server import ChallengeDispatcher
    from nfpair.system import get_device_model

    return ChallengeDispatcher(
        device_name=config.pairing.device_name or get_device_model(),
        app_name=config.pairing.app_name,
        connect_timeout=config.server.connect_timeout,
        read_timeout=config.server.read_timeout,
    )


def _code_value(value: str) -> str:
    """Prompt value processor: only complete codes get through."""
    value = value.strip()
    if not is_complete_code(value):
        raise click.BadParameter(f"enter the {CODE_LENGTH} digits shown on the server")
    return value


def _report(manager) -> None:
    """Echo the current outcome. Failures go to stderr."""
    message = manager.message
    if not message:
        return
    if is_failure(manager.session.outcome):
        click.echo(f"Error: {message}", err=True)
    else:
        click.echo(message)


@main.command()
@click.argument("address")
@click.pass_context
def pair(ctx: click.Context, address: str) -> None:
    """Pair with the server at ADDRESS.

    The server shows a verification code; type it back here to prove you
    control it. The address is saved once the code matches.
    """
    import asyncio

    from nfpair.errors import StorageError
    from nfpair.pairing import PairingManager, PairingState

    config = ctx.obj["config"]

    async def _pair() -> bool:
        store = JsonAddressStore(get_store_path(config))
        await store.load()

        async with _build_probe(config) as probe, _build_dispatcher(config) as dispatcher:
            manager = PairingManager(
                probe,
                dispatcher,
                store,
                confirm_delay=config.pairing.confirm_delay,
                challenge_ttl=config.pairing.challenge_ttl,
            )
            try:
                click.echo(f"Connecting to {normalize_address(address)}...")
                session = await manager.connect(address)
                if not session.awaiting_confirmation:
                    _report(manager)
                    return False

                click.echo("A verification code is now shown on the server.")
                while manager.session.awaiting_confirmation:
                    # Prompt off the loop so the expiry timer keeps running
                    code = await asyncio.to_thread(
                        click.prompt, "Verification code", value_proc=_code_value
                    )
                    session = await manager.submit(code)
                    _report(manager)
                    if session.state is PairingState.CONFIRMED:
                        await manager.wait_closed()
                        return True
                return False

            except click.Abort:
                manager.cancel()
                click.echo(err=True)
                _report(manager)
                return False
            except StorageError as e:
                click.echo(f"Error: {e}", err=True)
                return False
            finally:
                await manager.close()

    if not asyncio.run(_pair()):
        raise SystemExit(1)


@main.command()
@click.argument("address")
@click.pass_context
def probe(ctx: click.Context, address: str) -> None:
    """Check whether the server at ADDRESS is compatible."""
    import asyncio

    from nfpair.server import VersionCheckStatus

    config = ctx.obj["config"]
    base_url = normalize_address(address)

    async def _probe():
        async with _build_probe(config) as version_probe:
            return await version_probe.probe(base_url)

    check = asyncio.run(_probe())

    if check.status is VersionCheckStatus.UNREACHABLE:
        click.echo(f"Error: Cannot reach server at {base_url}", err=True)
        raise SystemExit(1)
    if check.status is VersionCheckStatus.MALFORMED:
        click.echo("Error: Server did not report a version", err=True)
        raise SystemExit(1)

    click.echo(f"Server version: {check.reported_version}")
    if check.status is VersionCheckStatus.MISMATCH:
        click.echo(
            f"Version: incompatible ({check.required_version} required)", err=True
        )
        raise SystemExit(1)
    click.echo("Version: compatible")


@main.command()
@click.option("--clear", is_flag=True, help="Forget the saved server.")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation")
@click.pass_context
def server(ctx: click.Context, clear: bool, force: bool) -> None:
    """Show the server this device is paired with."""
    import asyncio

    config = ctx.obj["config"]

    async def _server() -> None:
        store = JsonAddressStore(get_store_path(config))
        await store.load()
        stored = store.get()

        if stored is None:
            click.echo("No server configured.")
            return

        if not clear:
            click.echo(f"Server: {stored.address}")
            if stored.saved_at:
                click.echo(f"Paired: {stored.saved_at[:19].replace('T', ' ')}")
            return

        if not force and not click.confirm(f"Forget server {stored.address}?"):
            click.echo("Aborted.")
            return
        await store.clear()
        click.echo("Server forgotten.")

    asyncio.run(_server())


@main.command()
def version() -> None:
    """Show version."""
    click.echo(f"nfpair version {__version__}")
