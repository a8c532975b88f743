"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from hls_cli.core.download_manager import SessionResult
from hls_cli.models.segment import StreamMetadata
from hls_cli.utils.formatting import format_duration, format_size, format_speed


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "NotVariantPlaylist": [
            "• Open the playlist in a browser or text editor.",
            "• Pick one of the .m3u8 URLs listed under #EXT-X-STREAM-INF.",
            "• Run `hls-cli download <variant URL>`.",
        ],
        "NoSegmentsFound": [
            "• The URL may not point to an HLS playlist.",
            "• Live playlists can be briefly empty; try again.",
        ],
        "ManifestFetchFailed": [
            "• Check the URL and your internet connection.",
            "• The server may reject direct requests; try `--proxy`.",
        ],
        "KeyFetchFailed": [
            "• The key server may require cookies or a token in the URL.",
            "• Try `--proxy` if the key host blocks your requests.",
        ],
        "DecryptionFailed": [
            "• The key or IV does not match the segment data.",
            "• SAMPLE-AES streams are not supported.",
        ],
        "SegmentFetchFailed": [
            "• A segment could not be downloaded; signed URLs may have expired.",
            "• Fetch a fresh playlist URL and retry.",
            "• Lower `--batch-size` if the server throttles you.",
        ],
        "ConversionError": [
            "• Make sure ffmpeg is installed and on your PATH.",
            "• Windows: `winget install Gyan.FFmpeg`",
            "• macOS: `brew install ffmpeg`",
            "• Debian/Ubuntu: `sudo apt update && sudo apt install ffmpeg`",
        ],
        "ScanError": [
            "• The site might be blocking automated requests.",
            "• Try `--proxy`, or copy the .m3u8 URL from your browser's network tab.",
        ],
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• Run `hls-cli init --force` to recreate it with defaults.",
        ],
        "TimeoutError": [
            "• A request timed out, which may indicate network throttling.",
            "• Check your internet speed.",
            "• Try a smaller `--batch-size`.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_stream_info(url: str, segment_count: int, metadata: StreamMetadata):
    """Displays what a playlist contains."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Playlist:", f"[dim]{url}[/dim]")
    table.add_row("Segments:", str(segment_count))
    table.add_row("Target Duration:", f"{metadata.target_duration:g}s")
    table.add_row(
        "Estimated Length:", f"~{format_duration(metadata.estimated_duration)}"
    )
    if metadata.is_encrypted:
        methods = ", ".join(sorted(metadata.encryption_methods))
        table.add_row("Encryption:", f"[yellow]🔒 {methods}[/yellow]")
    else:
        table.add_row("Encryption:", "[green]🔓 None[/green]")

    console.print(
        Panel(table, title="[bold]📼 Stream Info[/bold]", border_style="cyan")
    )


def print_scan_results(page_url: str, urls: list[str]):
    """Lists the playlist URLs found on a page."""
    console = Console()
    if not urls:
        console.print(
            f"[yellow]⚠️  No .m3u8 links found on[/yellow] [dim]{page_url}[/dim]"
        )
        return

    table = Table(title=f"Playlists found on {page_url}", box=box.ROUNDED)
    table.add_column("#", style="dim", justify="right")
    table.add_column("URL", style="cyan", overflow="fold")
    for i, url in enumerate(urls, 1):
        table.add_row(str(i), url)
    console.print(table)


def print_summary_panel(result: SessionResult):
    """Displays the final summary of a download session."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=16)
    stats_table.add_column(style="white", justify="left")

    if result.metadata:
        stats_table.add_row("Segments:", str(result.metadata.segment_count))
    stats_table.add_row("Total Size:", f"[cyan]{format_size(result.total_bytes)}[/cyan]")
    if speed := format_speed(result.total_bytes, result.duration_s):
        stats_table.add_row("Avg. Speed:", f"[magenta]{speed}[/magenta]")
    stats_table.add_row(
        "Time Elapsed:", f"[blue]{format_duration(result.duration_s)}[/blue]"
    )
    if result.ts_path:
        stats_table.add_row("TS File:", f"[green]{result.ts_path}[/green]")
    if result.mp4_path:
        stats_table.add_row("MP4 File:", f"[green]{result.mp4_path}[/green]")

    if result.conversion_failed:
        title = "⚠ [bold]Downloaded, Conversion Failed[/bold]"
        border_color = "yellow"
    else:
        title = "📼 [bold]Download Complete![/bold]"
        border_color = "green"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
