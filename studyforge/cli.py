# studyforge/cli.py
"""
CLI interface for studyforge.

Thin presentation layer over the capture queue, the generation service and
the item store. Command output goes to stdout; progress and logs go to stderr.
"""

import asyncio
import base64
import time
from collections import deque
from pathlib import Path

import typer
from pydantic import TypeAdapter, ValidationError

from studyforge.config.connection import decode_connection_key, encode_connection_key
from studyforge.config.loader import get_config_path, load_config
from studyforge.config.schema import ServiceConfig, StudyForgeConfig
from studyforge.errors import StudyForgeError
from studyforge.logging_config import configure_logging
from studyforge.models.pages import SourcePage

app = typer.Typer(
    name="studyforge",
    help="Turn photographed textbook pages into flashcards and other study items.",
    no_args_is_help=True,
)
key_app = typer.Typer(help="Encode and decode connection keys.", no_args_is_help=True)
app.add_typer(key_app, name="key")

_pages_adapter: TypeAdapter = TypeAdapter(list[SourcePage])


def _fmt_duration(seconds: float) -> str:
    """Format seconds as human-readable duration (e.g. '5m17s', '42s')."""
    s = int(seconds)
    if s < 60:
        return f"{s}s"
    m, s = divmod(s, 60)
    return f"{m}m{s:02d}s"


def _run(coro):
    """Run async function from sync CLI context."""
    return asyncio.run(coro)


def _load_config(verbose: bool = False) -> StudyForgeConfig:
    config = load_config()
    verbosity = "verbose" if verbose else config.output.verbosity
    configure_logging(verbosity, json_output=config.output.json_logs)
    return config


def _make_lifecycle(config: StudyForgeConfig):
    from studyforge.background.lifecycle import AppLifecycle

    return AppLifecycle(config)


async def _get_store(config: StudyForgeConfig):
    """Open the item store directly (no lifecycle needed for read-only ops)."""
    from studyforge.config.loader import resolve_db_path
    from studyforge.models.sqlite_store import SQLiteItemStore

    store = SQLiteItemStore(resolve_db_path(config))
    await store.initialize()
    return store


def _resolve_service(config: StudyForgeConfig, connection_key: str | None) -> ServiceConfig:
    if not connection_key:
        return config.service
    try:
        return decode_connection_key(connection_key, base=config.service)
    except StudyForgeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _read_pages(path: Path) -> list[SourcePage]:
    try:
        return _pages_adapter.validate_json(path.read_bytes())
    except (OSError, ValidationError) as e:
        typer.echo(f"Error: cannot read pages from {path}: {e}", err=True)
        raise typer.Exit(1)


def _parse_kinds(kinds: list[str]) -> list[dict]:
    targets = []
    for spec in kinds:
        name, _, count = spec.partition("=")
        try:
            targets.append({"kind": name, "count": int(count) if count else 10})
        except ValueError:
            typer.echo(f"Error: invalid --kind '{spec}' (expected KIND=COUNT)", err=True)
            raise typer.Exit(2)
    return targets


def _state_color(state: str) -> str:
    colors = {
        "complete": typer.colors.GREEN,
        "processing": typer.colors.YELLOW,
        "generating": typer.colors.YELLOW,
        "queued": typer.colors.CYAN,
        "error": typer.colors.RED,
    }
    return colors.get(state, typer.colors.WHITE)


def _item_summary(item) -> str:
    texts = item.comparison_texts()
    first = next(iter(texts.values()), "")
    first = first.replace("\n", " / ")
    return first[:70] + ("…" if len(first) > 70 else "")


def _make_generation_display(status, elapsed: float, log_lines: list[str]):
    """Build a rich renderable for the live generation panel."""
    from rich.console import Group
    from rich.panel import Panel
    from rich.table import Table
    from rich.text import Text

    total = status.total or 1
    fraction = min(status.progress / total, 1.0)
    bar_width = 36
    filled = int(fraction * bar_width)
    bar = "█" * filled + "░" * (bar_width - filled)

    table = Table.grid(padding=(0, 2))
    table.add_column()
    table.add_column(justify="right")
    for kind, count in (status.kind_counts or {}).items():
        style = "bold" if kind == status.kind else "dim"
        table.add_row(Text(kind, style=style), Text(str(count), style=style))

    parts: list = [
        Text(f"  {bar}  {fraction * 100:.0f}%  ({status.progress}/{status.total} chunks)", style="cyan"),
        Text(f"  {status.message or status.status}  [{_fmt_duration(elapsed)}]", style="dim italic"),
        table,
    ]
    for line in log_lines:
        parts.append(Text(f"  {line}", style="dim"))

    return Panel(
        Group(*parts),
        title=Text(f" {status.status} ", style="bold"),
        border_style="bright_black",
    )


@app.command()
def capture(
    images: list[Path] = typer.Argument(..., help="Page image files (JPEG/PNG)"),
    out: Path = typer.Option(None, "--out", "-o", help="Write pages JSON here (default: stdout)"),
    connection_key: str = typer.Option(None, "--key", help="Connection key overriding the configured service"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Analyze page images through the capture queue and write the extracted pages."""
    from rich.console import Console
    from rich.live import Live
    from rich.table import Table

    config = _load_config(verbose)
    service = _resolve_service(config, connection_key)
    console = Console(stderr=True)

    results: dict[str, SourcePage] = {}
    failures: dict[str, str] = {}

    def _table(queue) -> Table:
        table = Table(box=None, padding=(0, 2))
        table.add_column("PAGE")
        table.add_column("STATUS")
        table.add_column("DETAIL", style="dim")
        for job in queue.jobs:
            color = {"complete": "green", "processing": "yellow", "error": "red"}.get(job.status.value, "cyan")
            table.add_row(job.job_id, f"[{color}]{job.status.value}[/{color}]", job.error or "")
        return table

    async def _capture():
        lifecycle = _make_lifecycle(config)
        queue = lifecycle.queue
        try:
            for path in images:
                data = base64.b64encode(path.read_bytes()).decode("ascii")
                queue.enqueue(
                    path.stem,
                    data,
                    service,
                    on_complete=lambda result: results.__setitem__(
                        result.job_id, SourcePage.from_capture(result)
                    ),
                    on_error=lambda exc, job_id: failures.__setitem__(job_id, str(exc)),
                )
            with Live(_table(queue), console=console, refresh_per_second=4) as live:
                while True:
                    try:
                        await asyncio.wait_for(queue.wait_idle(), timeout=0.3)
                        break
                    except asyncio.TimeoutError:
                        live.update(_table(queue))
                live.update(_table(queue))
        finally:
            await queue.close()

    try:
        _run(_capture())
    except KeyboardInterrupt:
        raise typer.Exit(130)
    except OSError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    # Keep input order
    pages = [results[p.stem] for p in images if p.stem in results]
    payload = _pages_adapter.dump_json(pages, indent=2).decode()
    if out:
        out.write_text(payload, encoding="utf-8")
        console.print(f"[green]✓[/green] {len(pages)} page(s) written to {out}")
    else:
        typer.echo(payload)

    for job_id, error in failures.items():
        console.print(f"[red]✗ {job_id}[/red]: {error}")
    if failures:
        raise typer.Exit(1)


@app.command()
def estimate(
    pages_json: Path = typer.Argument(..., help="Pages JSON written by 'capture'"),
    connection_key: str = typer.Option(None, "--key", help="Connection key overriding the configured service"),
):
    """Estimate how many study items the pages could yield."""
    config = _load_config()
    service = _resolve_service(config, connection_key)
    pages = _read_pages(pages_json)

    async def _estimate():
        lifecycle = _make_lifecycle(config)
        try:
            return await lifecycle.service.estimate(pages, service)
        finally:
            await lifecycle.service.shutdown()

    try:
        count = _run(_estimate())
    except StudyForgeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(str(count))


@app.command()
def generate(
    pages_json: Path = typer.Argument(..., help="Pages JSON written by 'capture'"),
    kind: list[str] = typer.Option(["flashcard=10"], "--kind", "-k", help="KIND=COUNT, repeatable"),
    difficulty: str = typer.Option("mixed", "--difficulty", help="easy, medium, hard or mixed"),
    style: str = typer.Option(None, "--style", help="Free-form style guidance"),
    humor: bool = typer.Option(False, "--humor", help="Allow light humor"),
    max_total: int = typer.Option(50, "--max-total", help="Maximum items across all kinds"),
    series: str = typer.Option(None, "--series", help="Series key to save items under (default: file stem)"),
    connection_key: str = typer.Option(None, "--key", help="Connection key overriding the configured service"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Generate study items from captured pages. Ctrl+C cancels."""
    from rich.console import Console
    from rich.live import Live

    from studyforge.models.requests import GenerationRequest, GenerationStatus

    config = _load_config(verbose)
    service = _resolve_service(config, connection_key)
    pages = _read_pages(pages_json)
    series_key = series or pages_json.stem
    try:
        request = GenerationRequest.model_validate(
            {
                "widgets": _parse_kinds(kind),
                "preferences": {"difficulty": difficulty, "style": style, "include_humor": humor},
                "max_total": max_total,
            }
        )
    except ValidationError as e:
        typer.echo(f"Error: invalid request: {e}", err=True)
        raise typer.Exit(2)

    console = Console(stderr=True)
    outcome: dict = {"items": None, "error": None, "status": GenerationStatus()}
    log_lines: deque[str] = deque(maxlen=5)

    async def _generate():
        lifecycle = _make_lifecycle(config)

        async def _on_signal(sig_name: str) -> None:
            if lifecycle.service.cancel(series_key):
                log_lines.append(f"{time.strftime('%H:%M:%S')} Canceling after current chunk...")

        await lifecycle.startup(on_signal=_on_signal)
        start = time.monotonic()

        def _on_status(status: GenerationStatus) -> None:
            if status.message and status.message != outcome["status"].message:
                log_lines.append(f"{time.strftime('%H:%M:%S')} {status.message}")
            outcome["status"] = status

        async def _on_complete(items) -> None:
            for item in items:
                await lifecycle.store.save(item, series_key=series_key)
            outcome["items"] = items

        def _on_error(error: str) -> None:
            outcome["error"] = error

        try:
            await lifecycle.service.start_generation(
                series_key, pages, service, request,
                on_status=_on_status, on_complete=_on_complete, on_error=_on_error,
            )
            with Live(
                _make_generation_display(outcome["status"], 0.0, []),
                console=console,
                refresh_per_second=4,
            ) as live:
                while series_key in lifecycle.service.active_generations():
                    live.update(_make_generation_display(
                        outcome["status"], time.monotonic() - start, list(log_lines)
                    ))
                    await asyncio.sleep(0.3)
                live.update(_make_generation_display(
                    outcome["status"], time.monotonic() - start, list(log_lines)
                ))
        finally:
            await lifecycle.shutdown()

    _run(_generate())

    console.print()
    items = outcome["items"]
    if outcome["error"]:
        console.print(f"[red]✗ Failed[/red]: {outcome['error']}")
        raise typer.Exit(1)
    if items is None:
        console.print("[yellow]Canceled[/yellow]: no items saved")
        raise typer.Exit(130)

    counts = outcome["status"].kind_counts or {}
    summary = ", ".join(f"{n} {k}" for k, n in counts.items())
    console.print(f"[green]✓ Done[/green]  {len(items)} item(s) saved under '{series_key}' ({summary})")
    for item in items:
        typer.echo(f"{item.id}  {item.kind:<10} {_item_summary(item)}")


@app.command("list")
def list_items(
    kind: str = typer.Option(None, "--kind", "-k", help="Only this kind"),
    series: str = typer.Option(None, "--series", help="Only this series"),
):
    """List saved study items, newest first."""
    config = _load_config()

    async def _list():
        store = await _get_store(config)
        try:
            return await store.list_all(kind=kind, series_key=series)
        finally:
            await store.close()

    items = _run(_list())
    if not items:
        typer.echo("No items found.")
        return

    typer.echo(f"{'ID':<38} {'KIND':<10} {'DIFFICULTY':<11} TEXT")
    typer.echo("-" * 100)
    for item in items:
        typer.echo(f"{item.id:<38} {item.kind:<10} {item.difficulty:<11} {_item_summary(item)}")


@app.command()
def show(item_id: str = typer.Argument(..., help="Item ID")):
    """Print one item as JSON."""
    config = _load_config()

    async def _show():
        store = await _get_store(config)
        try:
            return await store.get(item_id)
        finally:
            await store.close()

    item = _run(_show())
    if item is None:
        typer.echo(f"Error: item {item_id} not found", err=True)
        raise typer.Exit(1)
    typer.echo(item.model_dump_json(indent=2, by_alias=True))


@app.command()
def delete(item_id: str = typer.Argument(..., help="Item ID")):
    """Delete one item."""
    config = _load_config()

    async def _delete():
        store = await _get_store(config)
        try:
            return await store.delete(item_id)
        finally:
            await store.close()

    if not _run(_delete()):
        typer.echo(f"Error: item {item_id} not found", err=True)
        raise typer.Exit(1)
    typer.echo(f"Deleted {item_id}")


@key_app.command("encode")
def key_encode(
    endpoint: str = typer.Option(..., "--endpoint", help="Service endpoint URL"),
    api_key: str = typer.Option(..., "--api-key", help="API key"),
    provider: str = typer.Option("azure", "--provider", help="ollama, openai or azure"),
    model: str = typer.Option(None, "--model", help="Model or deployment name"),
):
    """Print a connection key for an endpoint and API key."""
    try:
        fields = {"provider": provider, "base_url": endpoint, "api_key": api_key}
        if model:
            fields["model"] = model
        typer.echo(encode_connection_key(ServiceConfig(**fields)))
    except (StudyForgeError, ValidationError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@key_app.command("decode")
def key_decode(key: str = typer.Argument(..., help="Connection key")):
    """Show the service a connection key points at (API key masked)."""
    try:
        service = decode_connection_key(key)
    except StudyForgeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    masked = f"{service.api_key[:4]}…" if service.api_key else "-"
    typer.echo(f"Provider: {service.provider}")
    typer.echo(f"Endpoint: {service.base_url}")
    typer.echo(f"Model:    {service.model}")
    typer.echo(f"API key:  {masked}")


@app.command("config")
def show_config():
    """Print the config file path."""
    typer.echo(str(get_config_path()))
