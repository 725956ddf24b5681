"""
Command line interface: decode, info, peers, handshake, download_piece, download.
"""
import asyncio
import logging
from pathlib import Path

import click

from .bencode import decode
from .config import ClientConfig
from .exceptions import WiretorrentError
from .formatting import render_info, render_value
from .log import setup_logging
from .session_manager import SessionManager
from .torrent.metainfo import TorrentMeta

logger = logging.getLogger(__name__)


def _parse_peer(address: str):
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise click.BadParameter(f"expected <ip>:<port>, got {address!r}")
    return host, int(port)


def _run(coro):
    """Run a coroutine, turning wiretorrent and OS errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except (WiretorrentError, OSError) as exc:
        logger.debug("Command failed", exc_info=True)
        raise click.ClickException(str(exc)) from exc


def _load_meta(torrent: Path) -> TorrentMeta:
    try:
        return TorrentMeta(torrent)
    except WiretorrentError as exc:
        raise click.ClickException(f"{torrent}: {exc}") from exc


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log protocol traffic at DEBUG level.")
@click.pass_context
def cli(ctx, verbose):
    """Minimal single-peer BitTorrent client."""
    try:
        config = ClientConfig.from_env()
    except WiretorrentError as exc:
        raise click.ClickException(str(exc)) from exc
    setup_logging("DEBUG" if verbose else config.log_level)
    ctx.obj = config


@cli.command("decode")
@click.argument("value")
def decode_cmd(value):
    """Decode a bencoded VALUE and print it as JSON."""
    try:
        decoded = decode(value.encode())
    except WiretorrentError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(render_value(decoded))


@cli.command("info")
@click.argument("torrent", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def info_cmd(torrent):
    """Print tracker URL, length, info hash and piece hashes of TORRENT."""
    click.echo(render_info(_load_meta(torrent)))


@cli.command("peers")
@click.argument("torrent", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def peers_cmd(config, torrent):
    """Announce TORRENT to its tracker and list the peers returned."""
    session = SessionManager(_load_meta(torrent), config)
    for ip, port in _run(session.get_peers()):
        click.echo(f"{ip}:{port}")


@cli.command("handshake")
@click.argument("torrent", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("peer")
@click.pass_obj
def handshake_cmd(config, torrent, peer):
    """Handshake with PEER (<ip>:<port>) and print its peer id."""
    ip, port = _parse_peer(peer)
    session = SessionManager(_load_meta(torrent), config)
    result = _run(session.handshake(ip, port))
    click.echo(f"Peer ID: {result.peer_id.hex()}")


@cli.command("download_piece")
@click.option("-o", "--output", required=True, type=click.Path(dir_okay=False, path_type=Path))
@click.argument("torrent", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("index", type=click.IntRange(min=0))
@click.pass_obj
def download_piece_cmd(config, output, torrent, index):
    """Download piece INDEX of TORRENT into OUTPUT."""
    meta = _load_meta(torrent)
    if index >= meta.num_pieces:
        raise click.BadParameter(f"torrent has {meta.num_pieces} pieces", param_hint="INDEX")
    session = SessionManager(meta, config)
    with output.open("wb") as sink:
        _run(session.download_piece(index, sink))
    click.echo(f"Piece {index} downloaded to {output}.")


@cli.command("download")
@click.option("-o", "--output", required=True, type=click.Path(dir_okay=False, path_type=Path))
@click.argument("torrent", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def download_cmd(config, output, torrent):
    """Download the whole content of TORRENT into OUTPUT."""
    session = SessionManager(_load_meta(torrent), config)
    with output.open("wb") as sink:
        _run(session.download(sink))
    click.echo(f"Downloaded {torrent} to {output}.")


def main():
    cli(prog_name="wiretorrent")


if __name__ == "__main__":
    main()
