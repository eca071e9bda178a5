"""Main entry point for the build-cache CLI.

Provides a Typer-based CLI for inspecting and operating a remote build
cache bucket by hand: configuration, store, load and existence checks.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from remote_build_cache import __version__
from remote_build_cache.config import CacheConfig, get_config_path
from remote_build_cache.errors import BuildCacheError
from remote_build_cache.logging_config import setup_logging
from remote_build_cache.services.cache import CacheService, create_cache_service, describe_config

console = Console()

app = typer.Typer(
    name="build-cache",
    help="Remote build cache backed by object storage",
    rich_markup_mode="rich",
)


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"build-cache version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
) -> None:
    """build-cache: store and load build artifacts in a bucket.

    ## Commands

    * [bold cyan]config[/bold cyan] - Show or change configuration
    * [bold cyan]describe[/bold cyan] - Show the configured backend
    * [bold cyan]store[/bold cyan] / [bold cyan]load[/bold cyan] - Upload or download an entry
    * [bold cyan]exists[/bold cyan] - Check whether an entry is present
    """
    setup_logging(verbose=verbose)
    ctx.obj = {"config_path": config_path}


def load_config(ctx: typer.Context) -> CacheConfig:
    """Load the configuration or exit with an error message."""
    config_path: Optional[Path] = ctx.obj.get("config_path") if ctx.obj else None
    try:
        return CacheConfig.load(config_path)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        console.print("Run [cyan]build-cache config set bucket <name>[/cyan] to create one")
        raise typer.Exit(1)
    except BuildCacheError as e:
        console.print(f"[red]Error loading config: {e}[/red]")
        raise typer.Exit(1)


def open_service(ctx: typer.Context) -> CacheService:
    """Construct the cache service or exit with an error message."""
    config = load_config(ctx)
    try:
        return create_cache_service(config)
    except BuildCacheError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.command()
def config(
    ctx: typer.Context,
    action: str = typer.Argument(
        ...,
        help="Action to perform (show, set, path)",
    ),
    key: str = typer.Argument(
        None,
        help="Configuration key (for set action)",
    ),
    value: str = typer.Argument(
        None,
        help="Configuration value (for set action)",
    ),
) -> None:
    """Manage configuration.

    Examples:
        build-cache config show
        build-cache config set bucket ci-cache
        build-cache config set expire_after_seconds 604800
        build-cache config path
    """
    config_path: Path = (ctx.obj or {}).get("config_path") or get_config_path()

    if action == "show":
        cfg = load_config(ctx)
        panel = Panel.fit(
            f"[cyan]Bucket:[/cyan] {cfg.bucket}\n"
            f"[cyan]Credentials file:[/cyan] {cfg.credentials_file_path or '(not set)'}\n"
            f"[cyan]Inline credentials:[/cyan] {'(set)' if cfg.credentials_inline else '(not set)'}\n"
            f"[cyan]Expire after (s):[/cyan] {cfg.expire_after_seconds}\n"
            f"[cyan]Endpoint:[/cyan] {cfg.endpoint_url or '(default)'}\n"
            f"[cyan]Region:[/cyan] {cfg.region or '(default)'}\n"
            f"[cyan]Background refresh:[/cyan] {cfg.refresh_in_background}",
            title="Configuration",
            border_style="green",
        )
        console.print(panel)

    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage: build-cache config set KEY VALUE[/red]")
            raise typer.Exit(1)
        if key == "credentials_inline":
            console.print("[red]Inline credentials are not stored in the config file[/red]")
            console.print("Set BUILD_CACHE_CREDENTIALS_INLINE instead")
            raise typer.Exit(1)

        try:
            if config_path.exists():
                cfg = CacheConfig.load(config_path).with_value(key, value)
            elif key == "bucket":
                cfg = CacheConfig(bucket=value)
            else:
                console.print(f"[red]Config file not found: {config_path}[/red]")
                console.print("Set the bucket first: [cyan]build-cache config set bucket <name>[/cyan]")
                raise typer.Exit(1)
        except (ValueError, BuildCacheError) as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

        cfg.save(config_path)
        console.print(f"[green]Set {key} = {value}[/green]")

    elif action == "path":
        console.print(str(config_path), soft_wrap=True)

    else:
        console.print(f"[red]Unknown action: {action}[/red]")
        console.print("Valid actions: show, set, path")
        raise typer.Exit(1)


@app.command()
def describe(ctx: typer.Context) -> None:
    """Show the configured cache backend."""
    cfg = load_config(ctx)
    info = describe_config(cfg)
    lines = [f"[cyan]{name}:[/cyan] {text}" for name, text in info.items()]
    console.print(Panel.fit("\n".join(lines), title="Build Cache", border_style="green"))


@app.command()
def store(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key (hex content hash)"),
    source: Path = typer.Argument(..., help="File whose bytes are stored"),
) -> None:
    """Store a file's contents under KEY."""
    if not source.is_file():
        console.print(f"[red]File not found: {source}[/red]")
        raise typer.Exit(1)

    data = source.read_bytes()
    with open_service(ctx) as service:
        try:
            service.store(key, data)
        except BuildCacheError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

    console.print(f"[green]Stored {key} ({len(data)} bytes) in {service.bucket}[/green]")


@app.command()
def load(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key (hex content hash)"),
    dest: Path = typer.Argument(..., help="File to write the entry to"),
) -> None:
    """Load the entry stored under KEY into a file."""
    with open_service(ctx) as service:
        try:
            data = service.load(key)
        except BuildCacheError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

    if data is None:
        console.print(f"[yellow]Cache miss: {key}[/yellow]")
        raise typer.Exit(1)

    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(data)
    console.print(f"[green]Loaded {key} ({len(data)} bytes) to {dest}[/green]")


@app.command()
def exists(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key (hex content hash)"),
) -> None:
    """Check whether an entry exists. Exits 1 if it does not."""
    with open_service(ctx) as service:
        try:
            found = service.exists(key)
        except BuildCacheError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

    if not found:
        console.print(f"[yellow]{key} not found[/yellow]")
        raise typer.Exit(1)
    console.print(f"[green]{key} exists[/green]")


if __name__ == "__main__":
    app()
