"""Command-line interface for LLM Lint."""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
import uvicorn
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from llm_lint import __version__
from llm_lint.config import Config, load_config, validate_config
from llm_lint.formatter import format_finding, format_tree
from llm_lint.llm_client import LMStudioClient
from llm_lint.models.document import Document
from llm_lint.models.findings import Finding, Severity
from llm_lint.orchestrator import LintOrchestrator
from llm_lint.parser import FindingParser
from llm_lint.server import create_app
from llm_lint.sinks import InMemoryDiagnosticsSink, build_badge, build_tree
from llm_lint.store import ResultStore

console = Console()
err_console = Console(stderr=True)

LANGUAGE_BY_SUFFIX = {
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".go": "go",
    ".rs": "rust",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".hpp": "cpp",
    ".java": "java",
    ".cs": "csharp",
    ".rb": "ruby",
    ".php": "php",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
    ".lua": "lua",
    ".sh": "shellscript",
    ".vue": "vue",
}

SEVERITY_STYLES = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
    Severity.HINT: "dim",
}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True)],
    )


def document_from_path(path: Path) -> Document:
    """Build a Document for a file on disk."""
    resolved = path.resolve()
    return Document(
        uri=resolved.as_uri(),
        path=str(resolved),
        text=resolved.read_text(encoding="utf-8"),
        language_id=LANGUAGE_BY_SUFFIX.get(resolved.suffix.lower(), "plaintext"),
    )


def _load_valid_config(config_path: str | None) -> Config:
    config = load_config(Path(config_path) if config_path else None)
    errors = validate_config(config)
    if errors:
        for error in errors:
            console.print(f"[red]Config error:[/red] {error}")
        sys.exit(1)
    return config


def print_findings(title: str, findings: list[Finding]) -> None:
    """Render findings as a table."""
    if not findings:
        console.print(f"[green]✓ {title}: no findings[/green]")
        return

    table = Table(title=title)
    table.add_column("Severity")
    table.add_column("Ln", justify="right")
    table.add_column("Col", justify="right")
    table.add_column("Message")

    for finding in findings:
        style = SEVERITY_STYLES[finding.severity]
        table.add_row(
            f"[{style}]{finding.severity.token}[/{style}]",
            str(finding.line + 1) if finding.position else "-",
            str(finding.column) if finding.position else "-",
            finding.message,
        )

    console.print(table)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def cli(verbose: bool) -> None:
    """LLM Lint - local LLM code review as editor diagnostics."""
    setup_logging(verbose)


@cli.command("review")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--output", type=click.Choice(["table", "json"]), default="table")
@click.option("--plain", is_flag=True, help="Ask for plain-text findings instead of a tool call")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def review(files: tuple[str, ...], output: str, plain: bool, config_path: str | None) -> None:
    """Review FILES with the local model."""
    config = _load_valid_config(config_path)
    if plain:
        config.llm.use_function_calling = False

    asyncio.run(review_files_async([Path(f) for f in files], config, output))


async def review_files_async(paths: list[Path], config: Config, output: str = "table") -> None:
    """Review files one after another and print the results."""
    store = ResultStore()
    workspace = [str(Path.cwd().resolve())]

    async with LMStudioClient(config.llm) as client:
        orchestrator = LintOrchestrator(
            client=client,
            store=store,
            settings=config.review,
            diagnostics=InMemoryDiagnosticsSink(),
            workspace_folders=workspace,
        )
        failed = 0
        for path in paths:
            document = document_from_path(path)
            if output == "table":
                console.print(f"🔍 Reviewing [bold]{path}[/bold]...")
            result = await orchestrator.review_now(document)
            if isinstance(result, str):
                err_console.print(f"[yellow]Skipped {path}: {result}[/yellow]")
                if result == "request failed":
                    failed += 1
                continue
            if output == "table":
                print_findings(str(path), result.findings)

    if output == "json":
        print(json.dumps(format_tree(build_tree(store, workspace), build_badge(store)), indent=2))
    elif store.aggregate_count():
        console.print(f"Total: {store.aggregate_count()} findings in {len(store)} files")

    if failed:
        sys.exit(1)


@cli.command("parse")
@click.argument("response_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--document",
    "document_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Reviewed source file, used to locate code snippets",
)
@click.option("--output", type=click.Choice(["table", "json"]), default="table")
def parse(response_file: str, document_path: str | None, output: str) -> None:
    """Parse a saved model response without calling the model."""
    content = Path(response_file).read_text(encoding="utf-8")
    document_text = Path(document_path).read_text(encoding="utf-8") if document_path else ""

    findings = FindingParser().parse_response(content, document_text)

    if output == "json":
        print(json.dumps([format_finding(f) for f in findings], indent=2))
    else:
        print_findings(response_file, findings)


@cli.group("config")
def config_group() -> None:
    """Configuration commands."""
    pass


@config_group.command("validate")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def config_validate(config_path: str | None) -> None:
    """Validate configuration file."""
    try:
        config = load_config(Path(config_path) if config_path else None)
        errors = validate_config(config)

        if errors:
            console.print("[red]Configuration is invalid:[/red]")
            for error in errors:
                console.print(f"  • {error}")
            sys.exit(1)
        else:
            console.print("[green]✓ Configuration is valid[/green]")
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        sys.exit(1)


@config_group.command("show")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def config_show(config_path: str | None) -> None:
    """Show current configuration."""
    config = load_config(Path(config_path) if config_path else None)

    console.print("\n[bold]Current Configuration[/bold]\n")

    table = Table(title="Model Server")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("Endpoint", config.llm.base_url)
    table.add_row("Model", config.llm.model)
    table.add_row("Threads", str(config.llm.threads))
    table.add_row("Function calling", str(config.llm.use_function_calling))
    console.print(table)

    console.print(f"\n[bold]Exclude:[/bold] {', '.join(config.review.exclude_patterns) or '-'}")
    console.print(f"[bold]Include:[/bold] {', '.join(config.review.include_patterns) or '-'}")
    console.print(f"[bold]Cooldown:[/bold] {config.review.cooldown_seconds}s")


@cli.command("serve")
@click.option("--port", type=int, default=None, help="Port to listen on")
@click.option("--host", default=None, help="Host to bind to")
@click.option(
    "--workspace",
    "workspace_folders",
    multiple=True,
    type=click.Path(exists=True, file_okay=False),
    help="Workspace folder (repeatable)",
)
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def serve(
    port: int | None,
    host: str | None,
    workspace_folders: tuple[str, ...],
    config_path: str | None,
) -> None:
    """Start the editor bridge server."""
    config = _load_valid_config(config_path)

    orchestrator = LintOrchestrator(
        client=LMStudioClient(config.llm),
        store=ResultStore(),
        settings=config.review,
        diagnostics=InMemoryDiagnosticsSink(),
        workspace_folders=[str(Path(w).resolve()) for w in workspace_folders],
    )
    app = create_app(orchestrator)

    host = host or config.server.host
    port = port or config.server.port
    console.print(f"🚀 Starting LLM Lint bridge on {host}:{port} (model {config.llm.model})")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    cli()
