"""
CLI interface for the answer bank.

Usage:
    answerbank ask "how do I pay my bill?"
    answerbank content add billing --content "Open Settings > Billing." -k billing,invoice
    answerbank links add billing refunds
    answerbank reload
"""

import json
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .api import AnswerBank
from .logging_config import configure_quiet_mode, enable_debug_mode
from .types import DEFAULT_ID, Answer, BulkResult, ContentItem, LinkRef, MutationResult, split_csv

# Longest body printed by `content view` before truncating
MAX_VIEW_LENGTH = 1950


# Configure quiet mode by default
# Set ANSWERBANK_VERBOSE=1 to enable debug mode via environment
if os.environ.get("ANSWERBANK_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"answerbank {version('answerbank')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_store_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _store_callback(value: Optional[Path]):
    global _store_override
    if value is not None:
        _store_override = value


def _get_store_override() -> Optional[Path]:
    return _store_override


app = typer.Typer(
    name="answerbank",
    help="Pre-authored answers with hybrid keyword + embedding retrieval.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

content_app = typer.Typer(name="content", help="Register, view, list and remove content.", rich_markup_mode=None)
keywords_app = typer.Typer(name="keywords", help="Manage curated keywords.", rich_markup_mode=None)
links_app = typer.Typer(name="links", help="Manage recommendation links.", rich_markup_mode=None)
app.add_typer(content_app)
app.add_typer(keywords_app)
app.add_typer(links_app)


# -----------------------------------------------------------------------------
# Output Formatting
# -----------------------------------------------------------------------------

def render_item(item: ContentItem, max_length: int = MAX_VIEW_LENGTH) -> str:
    """Header plus body, truncated to ``max_length`` characters."""
    text = f"# {item.name} (ID: {item.id})\n\n{item.content}"
    if len(text) > max_length:
        text = f"{text[:max_length]}...\n(content truncated)"
    return text


def render_answer(answer: Answer) -> str:
    """Answer body followed by related content, if any."""
    lines = [answer.content]
    if answer.related:
        lines.append("")
        lines.append("Related:")
        lines.extend(f"- {r.name} ({r.id})" for r in answer.related)
    return "\n".join(lines)


def render_links(target: ContentItem, links: list[LinkRef]) -> str:
    if not links:
        return f'"{target.id}" ({target.name}) has no links.'
    lines = [f'# Links for "{target.id}" ({target.name})', ""]
    for ref in links:
        label = ref.name if ref.exists else "(deleted)"
        lines.append(f"- {ref.id}: {label}")
    return "\n".join(lines)


def render_result(result: MutationResult, kind: str = "") -> str:
    """Message plus removed/remaining lists, in the order users read them."""
    if not result.success:
        return f"Error: {result.message}"
    lines = [result.message]
    if result.removed and kind:
        lines.append(f"Removed {kind}: {', '.join(result.removed)}")
    if result.current is not None and kind:
        current = ", ".join(result.current) if result.current else "none"
        lines.append(f"Current {kind}: {current}")
    return "\n".join(lines)


def _emit_result(result: MutationResult, kind: str = "") -> None:
    if _get_json_output():
        typer.echo(json.dumps(asdict(result)))
    else:
        typer.echo(render_result(result, kind), err=not result.success)
    if not result.success:
        raise typer.Exit(1)


def _emit_bulk(result: BulkResult) -> None:
    if _get_json_output():
        data = asdict(result)
        data["message"] = result.message
        typer.echo(json.dumps(data))
    else:
        typer.echo(result.message)
    if not result.success and not result.succeeded:
        raise typer.Exit(1)


# -----------------------------------------------------------------------------
# Common Options
# -----------------------------------------------------------------------------

StoreOption = Annotated[
    Optional[Path],
    typer.Option(
        "--store", "-s",
        envvar="ANSWERBANK_STORE_PATH",
        help="Path to the store directory (default: ~/.answerbank/)"
    )
]


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    store: Annotated[Optional[Path], typer.Option(
        "--store", "-s",
        envvar="ANSWERBANK_STORE_PATH",
        help="Path to the store directory",
        callback=_store_callback,
        is_eager=True,
    )] = None,
):
    """Pre-authored answers with hybrid keyword + embedding retrieval."""


def _get_bank(store: Optional[Path]) -> AnswerBank:
    """Open the answer bank, handling errors gracefully."""
    import atexit

    actual_store = store if store is not None else _get_store_override()
    try:
        bank = AnswerBank(actual_store)
    except (OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    atexit.register(bank.close)
    if not bank.available:
        typer.echo("Warning: backing store unavailable; serving the default answer only.", err=True)
    return bank


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def ask(
    question: Annotated[str, typer.Argument(help="The question to answer")],
    store: StoreOption = None,
):
    """Answer a question with the best matching content."""
    bank = _get_bank(store)
    answer = bank.ask(question)
    if _get_json_output():
        typer.echo(json.dumps(answer.to_dict(), ensure_ascii=False))
    else:
        typer.echo(render_answer(answer))


@app.command()
def rank(
    query: Annotated[str, typer.Argument(help="Query text")],
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum candidates to show")] = 10,
    store: StoreOption = None,
):
    """Show scored candidates for a query, best first."""
    bank = _get_bank(store)
    candidates = bank.rank(query)[:limit]
    if _get_json_output():
        typer.echo(json.dumps([asdict(c) for c in candidates]))
        return
    if not candidates:
        typer.echo("No candidates.")
        return
    for c in candidates:
        sim = f"{c.similarity:.3f}" if c.similarity is not None else "-"
        typer.echo(f"{c.score:.3f}  {c.id}  (keywords {c.keyword_score:.3f}, similarity {sim})")


@app.command()
def reload(store: StoreOption = None):
    """Regenerate embeddings for all stored content."""
    bank = _get_bank(store)
    _emit_bulk(bank.regenerate_embeddings())


@app.command("import")
def import_cmd(
    directory: Annotated[Path, typer.Argument(help="Directory of *.md files")],
    store: StoreOption = None,
):
    """Import markdown files (frontmatter: name, keywords) as content."""
    bank = _get_bank(store)
    _emit_bulk(bank.import_markdown(directory))


# -----------------------------------------------------------------------------
# content
# -----------------------------------------------------------------------------

def _read_content(content: Optional[str], file: Optional[Path]) -> str:
    if content is not None:
        return content
    if file is not None:
        return file.read_text(encoding="utf-8")
    if not sys.stdin.isatty():
        return sys.stdin.read()
    return ""


@content_app.command("add")
def content_add(
    id: Annotated[str, typer.Argument(help="Unique id for the content")],
    content: Annotated[Optional[str], typer.Option(
        "--content", "-c", help="Body text (default: read --file or stdin)"
    )] = None,
    file: Annotated[Optional[Path], typer.Option(
        "--file", "-f", help="Read the body from a file", exists=True, dir_okay=False
    )] = None,
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="Display name")] = None,
    keywords: Annotated[Optional[str], typer.Option(
        "--keywords", "-k", help="Comma-separated keywords"
    )] = None,
    replace: Annotated[bool, typer.Option(
        "--replace", help="Overwrite existing content with a different body"
    )] = False,
    store: StoreOption = None,
):
    """Register content under an id."""
    bank = _get_bank(store)
    body = _read_content(content, file)
    kw = split_csv(keywords) if keywords is not None else None
    _emit_result(bank.register(id, body, name, kw, replace=replace))


@content_app.command("view")
def content_view(
    id: Annotated[str, typer.Argument(help="Id of the content to show")],
    store: StoreOption = None,
):
    """Show one item."""
    bank = _get_bank(store)
    item = bank.find(id)
    if item is None:
        typer.echo(f'No content found with id "{id}".', err=True)
        raise typer.Exit(1)
    if _get_json_output():
        typer.echo(json.dumps(asdict(item), ensure_ascii=False))
    else:
        typer.echo(render_item(item))


@content_app.command("list")
def content_list(store: StoreOption = None):
    """List every id with its display name."""
    bank = _get_bank(store)
    items = bank.list_items()
    if _get_json_output():
        typer.echo(json.dumps([{"id": i.id, "name": i.name} for i in items], ensure_ascii=False))
        return
    for item in items:
        marker = " (default)" if item.id == DEFAULT_ID else ""
        typer.echo(f"- {item.id}: {item.name}{marker}")


@content_app.command("remove")
def content_remove(
    id: Annotated[str, typer.Argument(help="Id of the content to delete")],
    store: StoreOption = None,
):
    """Delete content and drop every link pointing at it."""
    bank = _get_bank(store)
    _emit_result(bank.delete(id))


# -----------------------------------------------------------------------------
# keywords
# -----------------------------------------------------------------------------

@keywords_app.command("add")
def keywords_add(
    id: Annotated[str, typer.Argument(help="Content id")],
    keywords: Annotated[str, typer.Argument(help="Comma-separated keywords")],
    store: StoreOption = None,
):
    """Add curated keywords to content."""
    bank = _get_bank(store)
    _emit_result(bank.add_keywords(id, split_csv(keywords)), kind="keywords")


@keywords_app.command("remove")
def keywords_remove(
    id: Annotated[str, typer.Argument(help="Content id")],
    keywords: Annotated[Optional[str], typer.Argument(
        help="Comma-separated keywords (omit to remove all)"
    )] = None,
    store: StoreOption = None,
):
    """Remove some or all curated keywords."""
    bank = _get_bank(store)
    _emit_result(bank.remove_keywords(id, split_csv(keywords) or None), kind="keywords")


@keywords_app.command("view")
def keywords_view(
    id: Annotated[str, typer.Argument(help="Content id")],
    store: StoreOption = None,
):
    """Show curated keywords."""
    bank = _get_bank(store)
    keywords = bank.view_keywords(id)
    if keywords is None:
        typer.echo(f'No content found with id "{id}".', err=True)
        raise typer.Exit(1)
    if _get_json_output():
        typer.echo(json.dumps(keywords, ensure_ascii=False))
    elif keywords:
        typer.echo(", ".join(keywords))
    else:
        typer.echo(f'"{id}" has no keywords.')


# -----------------------------------------------------------------------------
# links
# -----------------------------------------------------------------------------

@links_app.command("add")
def links_add(
    target_id: Annotated[str, typer.Argument(help="Content that recommends")],
    recommended_id: Annotated[str, typer.Argument(help="Content being recommended")],
    store: StoreOption = None,
):
    """Recommend one item from another."""
    bank = _get_bank(store)
    _emit_result(bank.add_link(target_id, recommended_id), kind="links")


@links_app.command("remove")
def links_remove(
    target_id: Annotated[str, typer.Argument(help="Content that recommends")],
    recommended_id: Annotated[Optional[str], typer.Argument(
        help="Link to remove (omit to remove all)"
    )] = None,
    store: StoreOption = None,
):
    """Remove one or all recommendation links."""
    bank = _get_bank(store)
    _emit_result(bank.remove_link(target_id, recommended_id), kind="links")


@links_app.command("view")
def links_view(
    target_id: Annotated[str, typer.Argument(help="Content id")],
    store: StoreOption = None,
):
    """Show recommendation links."""
    bank = _get_bank(store)
    target = bank.find(target_id)
    links = bank.view_links(target_id)
    if target is None or links is None:
        typer.echo(f'No content found with id "{target_id}".', err=True)
        raise typer.Exit(1)
    if _get_json_output():
        typer.echo(json.dumps([asdict(ref) for ref in links], ensure_ascii=False))
    else:
        typer.echo(render_links(target, links))


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="answerbank CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
