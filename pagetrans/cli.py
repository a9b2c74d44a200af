"""
Command-line interface for PageTrans.

Provides commands for:
- Translating HTML pages (replace or compare mode)
- Inspecting and maintaining the translation cache
- Managing per-site dictionaries and always/never site lists
- Managing API keys
- Listing engines

Usage:
    pagetrans translate page.html --to fr --engine google --output page.fr.html
    pagetrans translate page.html --to de --mode compare --full
    pagetrans cache stats
    pagetrans dict add example.com "Sign in" "Se connecter"
    pagetrans site always example.com/docs
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from pagetrans import __version__, config
from pagetrans.classifier import PageMode
from pagetrans.dom import Page
from pagetrans.keys import SERVICES, KeyManager
from pagetrans.scheduler import ScanProgress
from pagetrans.session import PageTranslator
from pagetrans.translate.cache import create_cache, human_readable_size
from pagetrans.translate.dictionary import DictionaryStore
from pagetrans.translate.orchestrator import create_orchestrator

app = typer.Typer(
    name="pagetrans",
    help="PageTrans: incremental, viewport-driven translation of HTML pages",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def version_callback(value: bool):
    if value:
        console.print(f"PageTrans v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log debug output",
    ),
):
    """PageTrans: translate the visible text of HTML pages in place."""
    setup_logging(verbose)


def _load_dictionary() -> DictionaryStore:
    return DictionaryStore(config.DICT_FILE).load()


@app.command()
def translate(
    input_file: Path = typer.Argument(..., help="HTML file to translate", exists=True, dir_okay=False),
    target_lang: Optional[str] = typer.Option(
        None, "--to", "-t",
        help="Target language code (default from settings)",
    ),
    source_lang: str = typer.Option(
        "auto", "--from", "-f",
        help="Source language code or 'auto'",
    ),
    engine: Optional[str] = typer.Option(
        None, "--engine", "-e",
        help="Translation engine (google, bing, deepl, dummy)",
    ),
    mode: Optional[str] = typer.Option(
        None, "--mode", "-m",
        help="Render mode: replace or compare",
    ),
    output_file: Optional[Path] = typer.Option(
        None, "--output", "-o",
        help="Where to write the translated HTML (default: stdout)",
    ),
    url: str = typer.Option(
        "", "--url", "-u",
        help="Page URL, used for per-site dictionaries and site lists",
    ),
    viewport_height: float = typer.Option(
        800, "--viewport-height",
        help="Viewport height in pixels",
    ),
    full: bool = typer.Option(
        False, "--full",
        help="Scroll through the whole page so every section gets translated",
    ),
    no_cache: bool = typer.Option(
        False, "--no-cache",
        help="Bypass the translation cache for this run",
    ),
):
    """Translate an HTML page."""
    settings = config.load_settings(config.SETTINGS_FILE)
    engine = engine or settings.default_engine
    try:
        page_mode = PageMode.parse(mode or settings.page_mode)
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)

    engines = list(settings.engine_priority)
    if engine not in engines:
        engines.append(engine)
    if engine.lower() in ("dummy", "echo", "test"):
        engines = [engine]

    cache = create_cache(settings, config.CACHE_FILE) if settings.cache_enabled else None
    dictionary = _load_dictionary()
    orchestrator = create_orchestrator(
        settings,
        engines=engines,
        cache=cache,
        dictionary=dictionary,
        key_manager=KeyManager(config_dir=config.DATA_DIR),
    )
    if not orchestrator.engines:
        console.print("[red]Error:[/] No usable translation engine")
        raise typer.Exit(1)

    page = Page.from_file(input_file, url=url, viewport_height=viewport_height)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        console=err_console,
        transient=True,
    ) as progress:
        task = progress.add_task("Translating...", total=None)

        def update_progress(p: ScanProgress):
            progress.update(task, total=p.total, completed=p.completed)

        translator = PageTranslator(page, orchestrator, settings, progress_callback=update_progress)

        async def run() -> bool:
            started = await translator.start_page_translation(
                target_lang, page_mode, engine, source_lang=source_lang, use_cache=not no_cache
            )
            if not started:
                return False
            while full:
                before = page.scroll_y
                page.scroll_by(page.viewport_height)
                await translator.wait_idle()
                if page.scroll_y == before:
                    break
            return True

        started = asyncio.run(run())

    if not started:
        console.print("[yellow]Page was not translated[/] (site is on the never-translate list)")
        raise typer.Exit(1)

    orchestrator.flush()

    stats = translator.progress
    table = Table(title="Translation Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Nodes queued", str(stats.total))
    table.add_row("Translated", str(stats.translated))
    table.add_row("Failed", str(stats.failed))
    table.add_row("Skipped", str(stats.skipped))
    if cache is not None:
        table.add_row("Cache hit rate", f"{cache.stats().hit_rate:.0%}")
    err_console.print(table)

    html = page.to_html()
    if output_file:
        output_file.write_text(html, encoding="utf-8")
        console.print(f"[green]Saved to:[/] {output_file}")
    else:
        console.print(html, markup=False, highlight=False, soft_wrap=True)


@app.command()
def cache(
    action: str = typer.Argument(..., help="Action: stats, clear, cleanup, top"),
    limit: int = typer.Option(10, "--limit", "-n", help="Entries shown by 'top'"),
):
    """Inspect or maintain the translation cache."""
    settings = config.load_settings(config.SETTINGS_FILE)
    store = create_cache(settings, config.CACHE_FILE)

    if action == "stats":
        stats = store.stats()
        table = Table(title="Translation Cache")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Entries", str(stats.count))
        table.add_row("Size", human_readable_size(stats.size))
        table.add_row("Max entries", str(store.max_size))
        table.add_row("Max age", f"{settings.cache_max_age / config.DAY_SECONDS:g} days")
        table.add_row("Enabled", "yes" if settings.cache_enabled else "no")
        console.print(table)

    elif action == "clear":
        count = len(store)
        store.clear()
        store.save()
        console.print(f"[green]✓[/] Removed {count} cache entries")

    elif action == "cleanup":
        removed = store.cleanup_expired()
        store.save()
        console.print(f"[green]✓[/] Removed {removed} expired entries")

    elif action == "top":
        table = Table(title="Most Used Translations")
        table.add_column("Text", style="cyan")
        table.add_column("Translation", style="green")
        table.add_column("Engine", style="yellow")
        table.add_column("Hits", justify="right")
        for entry in store.top_entries(limit):
            table.add_row(entry.text, entry.translation, entry.engine, str(entry.access_count))
        console.print(table)

    else:
        console.print(f"[red]Error:[/] Unknown action '{action}'")
        console.print("Available actions: stats, clear, cleanup, top")
        raise typer.Exit(1)


@app.command("dict")
def dictionary(
    action: str = typer.Argument(..., help="Action: list, add, remove, enable, disable, import"),
    domain: Optional[str] = typer.Argument(None, help="Site hostname, e.g. example.com"),
    original: Optional[str] = typer.Argument(None, help="Original text (or CSV path for 'import')"),
    translation: Optional[str] = typer.Argument(None, help="Custom translation"),
):
    """Manage per-site custom dictionaries.

    Examples:
        pagetrans dict list
        pagetrans dict add example.com "Sign in" "Se connecter"
        pagetrans dict disable example.com "Sign in"
        pagetrans dict import example.com terms.csv
    """
    store = _load_dictionary()

    if action == "list":
        domains = [domain] if domain else store.domains()
        table = Table(title="Custom Dictionaries")
        table.add_column("Domain", style="cyan")
        table.add_column("Original")
        table.add_column("Translation", style="green")
        table.add_column("Active", style="yellow")
        for name in domains:
            for entry in store.get_entries_for_domain(name):
                table.add_row(entry.domain, entry.original, entry.translation, "yes" if entry.active else "no")
        console.print(table)
        return

    if not domain or not original:
        console.print(f"[red]Error:[/] '{action}' needs a domain and an original text")
        raise typer.Exit(1)

    if action == "add":
        if translation is None:
            console.print("[red]Error:[/] Translation required")
            raise typer.Exit(1)
        store.add(domain, original, translation)
        console.print(f"[green]✓[/] {domain}: '{original}' -> '{translation}'")

    elif action == "remove":
        if not store.remove(domain, original):
            console.print(f"[yellow]⚠[/] No entry for '{original}' on {domain}")
            raise typer.Exit(1)
        console.print(f"[green]✓[/] Removed '{original}' from {domain}")

    elif action in ("enable", "disable"):
        if not store.set_active(domain, original, action == "enable"):
            console.print(f"[yellow]⚠[/] No entry for '{original}' on {domain}")
            raise typer.Exit(1)
        console.print(f"[green]✓[/] {action.capitalize()}d '{original}' on {domain}")

    elif action == "import":
        path = Path(original)
        if not path.exists():
            console.print(f"[red]Error:[/] File not found: {path}")
            raise typer.Exit(1)
        count = store.load_csv(path, domain)
        console.print(f"[green]✓[/] Imported {count} entries for {domain}")

    else:
        console.print(f"[red]Error:[/] Unknown action '{action}'")
        console.print("Available actions: list, add, remove, enable, disable, import")
        raise typer.Exit(1)

    store.save()


@app.command()
def site(
    action: str = typer.Argument(..., help="Action: list, always, never, remove, check, auto"),
    target: Optional[str] = typer.Argument(
        None, help="Site (host or host/path), URL for 'check', or on/off for 'auto'"
    ),
):
    """Manage always/never translate site lists and the auto-translate switch."""
    store = _load_dictionary()

    if action == "list":
        table = Table(title="Site Lists")
        table.add_column("Site", style="cyan")
        table.add_column("List", style="green")
        for name in store.always_sites:
            table.add_row(name, "always")
        for name in store.never_sites:
            table.add_row(name, "never")
        console.print(table)
        state = "on" if store.auto_translate_enabled else "off"
        console.print(f"\n[dim]Auto-translate on always-listed sites: {state}[/]")
        return

    if action == "auto":
        if target not in ("on", "off"):
            console.print("[red]Error:[/] 'auto' takes on or off")
            raise typer.Exit(1)
        store.auto_translate_enabled = target == "on"
        store.save()
        console.print(f"[green]✓[/] Auto-translate {target}")
        return

    if not target:
        console.print(f"[red]Error:[/] '{action}' needs a site")
        raise typer.Exit(1)

    if action == "always":
        store.add_always_site(target)
        console.print(f"[green]✓[/] Always translate {target}")
    elif action == "never":
        store.add_never_site(target)
        console.print(f"[green]✓[/] Never translate {target}")
    elif action == "remove":
        store.remove_site(target)
        console.print(f"[green]✓[/] Removed {target} from site lists")
    elif action == "check":
        if store.is_never_site(target):
            console.print(f"{target}: [red]never[/]")
        elif store.should_auto_translate(target):
            console.print(f"{target}: [green]always[/]")
        else:
            console.print(f"{target}: [dim]on demand[/]")
        return
    else:
        console.print(f"[red]Error:[/] Unknown action '{action}'")
        console.print("Available actions: list, always, never, remove, check, auto")
        raise typer.Exit(1)

    store.save()


@app.command()
def keys(
    action: str = typer.Argument(..., help="Action: list, set, delete"),
    service: Optional[str] = typer.Argument(None, help="Engine name (deepl)"),
):
    """Manage API keys for engines that need one.

    Examples:
        pagetrans keys list
        pagetrans keys set deepl
        pagetrans keys delete deepl
    """
    km = KeyManager(config_dir=config.DATA_DIR)

    if action == "list":
        table = Table(title="API Keys Status")
        table.add_column("Service", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Source", style="yellow")
        table.add_column("Value", style="dim")
        for key_info in km.list_keys():
            status = "[green]✓ Set[/]" if key_info.is_set else "[red]✗ Not set[/]"
            table.add_row(key_info.service, status, key_info.source, key_info.masked_value or "-")
        console.print(table)
        console.print("\n[dim]Priority: env > keychain > config file[/]")
        return

    if not service:
        console.print("[red]Error:[/] Service name required")
        console.print(f"Available services: {', '.join(SERVICES)}")
        raise typer.Exit(1)

    if action == "set":
        key = typer.prompt(f"Enter API key for {service}", hide_input=True)
        if not key.strip():
            console.print("[red]Error:[/] Key cannot be empty")
            raise typer.Exit(1)
        storage = km.set_key(service, key.strip())
        console.print(f"[green]✓[/] API key for {service} saved to {storage}")

    elif action == "delete":
        if km.delete_key(service):
            console.print(f"[green]✓[/] API key for {service} deleted")
        else:
            console.print(f"[yellow]⚠[/] No key found to delete for {service}")

    else:
        console.print(f"[red]Error:[/] Unknown action '{action}'")
        console.print("Available actions: list, set, delete")
        raise typer.Exit(1)


@app.command()
def engines():
    """List translation engines in fallback order."""
    settings = config.load_settings(config.SETTINGS_FILE)
    km = KeyManager(config_dir=config.DATA_DIR)

    table = Table(title="Translation Engines")
    table.add_column("#", justify="right")
    table.add_column("Engine", style="cyan")
    table.add_column("Key", style="yellow")
    table.add_column("Default", style="green")
    for i, name in enumerate(settings.engine_priority, 1):
        if name in SERVICES:
            needs_key = "set" if km.get_key(name) else "missing"
        else:
            needs_key = "not needed"
        table.add_row(str(i), name, needs_key, "✓" if name == settings.default_engine else "")
    console.print(table)
    console.print(f"\n[dim]Timeout per call: {settings.request_timeout:g}s, batch size: {settings.batch_size}[/]")


if __name__ == "__main__":
    app()
