# src/ollamapress/main.py
"""
OllamaPress - Entrypoint
Typer CLI: run the gateway, inspect settings, mint credentials, query Ollama.
"""
import typer
from rich.console import Console
from rich.table import Table

from .gateway.config import get_config
from .cli.commands.tokens import nonce, service_token, token
from .cli.commands.upstream import health, models

app = typer.Typer(name="ollamapress", help="Authenticated REST gateway for Ollama", add_completion=False)

app.command()(token)
app.command()(nonce)
app.command("service-token")(service_token)
app.command()(models)
app.command()(health)

console = Console()

SECRET_FIELDS = {"jwt_secret", "service_token_salt"}


@app.command()
def serve(
    host: str = typer.Option(None, "--host", "-h", help="Bind address, defaults to OLLAMAPRESS_HOST"),
    port: int = typer.Option(None, "--port", "-p", help="Bind port, defaults to OLLAMAPRESS_PORT"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the gateway with uvicorn"""
    import uvicorn

    config = get_config()
    uvicorn.run(
        "ollamapress.api.server:create_app",
        factory=True,
        host=host or config.host,
        port=port or config.port,
        reload=reload,
        log_config=None,
    )


@app.command("config")
def show_config():
    """Show the effective settings"""
    config = get_config()
    table = Table(title=f"OllamaPress {config.version}")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    for section, values in (
        ("", config.model_dump(exclude={"ollama", "access"})),
        ("ollama.", config.ollama.model_dump()),
        ("access.", config.access.model_dump()),
    ):
        for key, value in values.items():
            shown = "********" if key in SECRET_FIELDS and value else str(value)
            table.add_row(f"{section}{key}", shown)
    console.print(table)


@app.command()
def version():
    """Show OllamaPress version information"""
    console.print(f"[bold green]OllamaPress v{get_config().version}[/bold green]")


if __name__ == "__main__":
    app()
