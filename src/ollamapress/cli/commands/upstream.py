"""OllamaPress upstream commands

Query the configured Ollama server directly, bypassing the gateway.
"""
import typer
from rich.console import Console
from rich.table import Table

from ...core.upstream import UpstreamClient
from ...gateway.config import get_ollama_config
from ..utils.decorators import async_command, handle_exceptions

console = Console()


def _format_size(size: int) -> str:
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.0f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


@handle_exceptions
@async_command
async def models():
    """List the models installed on the Ollama server"""
    result = await UpstreamClient(get_ollama_config()).list_models()
    if "error" in result:
        console.print(f"[red]✗ Ollama error:[/red] {result['error']}")
        raise typer.Exit(1)

    table = Table(title="Installed models")
    table.add_column("Name", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Modified", style="dim")
    for model in result.get("models", []):
        table.add_row(model.get("name", ""), _format_size(model.get("size", 0)), str(model.get("modified_at", "")))
    console.print(table)


@handle_exceptions
@async_command
async def health():
    """Check that the Ollama server answers"""
    config = get_ollama_config()
    if await UpstreamClient(config).ping():
        console.print(f"[bold green]✅ Ollama reachable[/bold green] [dim]{config.url}[/dim]")
        return
    console.print(f"[bold red]✗ Ollama unreachable[/bold red] [dim]{config.url}[/dim]")
    raise typer.Exit(1)
