"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import signal
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from hls_cli import __version__
from hls_cli.core.download_manager import DownloadManager
from hls_cli.core.downloader import HLSDownloader
from hls_cli.exceptions import HlsCliError
from hls_cli.media.converter import FFmpegConverter
from hls_cli.net.transport import HttpTransport
from hls_cli.storage.config_manager import ConfigManager
from hls_cli.utils.url import is_valid_url
from hls_cli.web.scanner import scan_for_streams

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_scan_results,
    print_stream_info,
    print_summary_panel,
)
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("hls_cli")

app = typer.Typer(
    name="hls-cli",
    help=(
        "Download HLS (.m3u8) streams, decrypt AES-128 segments, and stitch them"
        " into a single file. Use 'hls-cli <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "hls-cli"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config(cli_options: dict | None = None):
    try:
        return ConfigManager(CONFIG_FILE).load_config(cli_options)
    except HlsCliError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e


def _require_url(url: str) -> None:
    if not is_valid_url(url):
        console.print(f"[red]✗ Please enter a valid URL:[/red] {url}")
        raise typer.Exit(code=1)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """HLS Downloader CLI"""
    if version:
        console.print(f"[bold]hls-cli[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("hls_cli").setLevel(log_level)

    if show_config:
        config_data = _load_config().model_dump(exclude={"config_path"})
        print_config(CONFIG_FILE, config_data)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing file without asking."
    ),
):
    """Write a configuration file with default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    try:
        ConfigManager(CONFIG_FILE).save_new_config()
    except HlsCliError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e
    console.print(f"[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


def _install_abort_handler(manager: DownloadManager) -> bool:
    """Routes Ctrl-C to `manager.abort()` instead of killing the event loop."""
    loop = asyncio.get_running_loop()
    session_task = asyncio.current_task()

    def _on_interrupt():
        if manager.downloader.is_downloading:
            console.print("\n[yellow]⚠️  Aborting download...[/yellow]")
            manager.abort()
        elif session_task is not None:
            session_task.cancel()

    try:
        loop.add_signal_handler(signal.SIGINT, _on_interrupt)
    except (NotImplementedError, RuntimeError):
        # Windows event loops have no signal handler support
        return False
    return True


@app.command(name="download")
def download_command(
    url: str = typer.Argument(..., help="URL of a variant (media) .m3u8 playlist."),
    output_dir: str | None = typer.Option(
        None, "-o", "--output", help="Directory to save the downloaded file into."
    ),
    name: str | None = typer.Option(
        None, "-n", "--name", help="Output file name (default: taken from the URL)."
    ),
    use_proxy: bool | None = typer.Option(
        None,
        "--proxy/--no-proxy",
        help="Route every request through the configured relay proxy.",
    ),
    convert: bool | None = typer.Option(
        None, "--convert/--no-convert", help="Convert the stream to MP4 with ffmpeg."
    ),
    keep_ts: bool | None = typer.Option(
        None,
        "--keep-ts/--no-keep-ts",
        help="Keep the .ts file after a successful MP4 conversion.",
    ),
    batch_size: int | None = typer.Option(
        None, "-b", "--batch-size", help="Number of segments fetched concurrently."
    ),
):
    """Download a stream and save it as .ts (and .mp4)."""
    _require_url(url)
    cli_options = {
        key: value
        for key, value in {
            "output_dir": output_dir,
            "use_proxy": use_proxy,
            "convert": convert,
            "keep_ts": keep_ts,
            "batch_size": batch_size,
        }.items()
        if value is not None
    }
    config = _load_config(cli_options)

    async def _download_async():
        async with (
            HttpTransport.from_config(config) as transport,
            ProgressManager(console=console) as progress_manager,
        ):
            downloader = HLSDownloader(transport, batch_size=config.batch_size)
            manager = DownloadManager(config, downloader, progress_manager)
            handler_installed = _install_abort_handler(manager)
            try:
                return await manager.run(url, name)
            finally:
                if handler_installed:
                    asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)

    try:
        result = asyncio.run(_download_async())
    except HlsCliError as e:
        console.print()
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    if result.aborted:
        raise typer.Exit()
    print_summary_panel(result)
    if result.conversion_failed:
        raise typer.Exit(code=1)


@app.command()
def info(
    url: str = typer.Argument(..., help="URL of a variant (media) .m3u8 playlist."),
    use_proxy: bool | None = typer.Option(
        None, "--proxy/--no-proxy", help="Route the request through the relay proxy."
    ),
):
    """Show what a playlist contains without downloading it."""
    _require_url(url)
    cli_options = {"use_proxy": use_proxy} if use_proxy is not None else {}
    config = _load_config(cli_options)

    async def _info_async():
        async with HttpTransport.from_config(config) as transport:
            return await HLSDownloader(transport).fetch_manifest(url)

    try:
        segments, metadata = asyncio.run(_info_async())
    except HlsCliError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e
    print_stream_info(url, len(segments), metadata)


@app.command()
def scan(
    page_url: str = typer.Argument(..., help="Web page to search for .m3u8 links."),
    use_proxy: bool | None = typer.Option(
        None, "--proxy/--no-proxy", help="Fetch the page through the relay proxy."
    ),
):
    """Find HLS playlist URLs embedded in a web page."""
    _require_url(page_url)
    cli_options = {"use_proxy": use_proxy} if use_proxy is not None else {}
    config = _load_config(cli_options)

    async def _scan_async():
        async with HttpTransport.from_config(config) as transport:
            return await scan_for_streams(page_url, transport)

    console.print(f"[cyan]Scanning {page_url}...[/cyan]")
    try:
        urls = asyncio.run(_scan_async())
    except HlsCliError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e
    print_scan_results(page_url, urls)


@app.command()
def convert(
    input_path: Path = typer.Argument(  # noqa: B008
        ..., exists=True, dir_okay=False, help="A .ts file to convert."
    ),
    output_path: Path | None = typer.Option(  # noqa: B008
        None, "-o", "--output", help="Output .mp4 path (default: next to the input)."
    ),
):
    """Convert a saved .ts file to .mp4 with ffmpeg."""
    config = _load_config()
    output_path = output_path or input_path.with_suffix(".mp4")
    converter = FFmpegConverter(config.ffmpeg_path)

    async def _convert_async():
        async with ProgressManager(console=console) as progress_manager:
            progress_manager.start_conversion()
            await converter.convert_file(
                input_path, output_path, progress_manager.update_conversion
            )

    try:
        asyncio.run(_convert_async())
    except HlsCliError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e
    console.print(f"[bold green]✓ Saved {output_path}[/bold green]")
