"""
Command-line interface for the pack optimizer.
"""

import sys
import os
from pathlib import Path
from typing import Optional, List

import toml
import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import PipelineConfig, DEFAULT_ZIP_NAME, ENV_VARS, ENV_PREFIX
from .errors import StageError
from .pipeline import PackPipeline, PipelineError, PipelineState, RunOutcome
from .utils.confirm import ConsoleConfirm

app = typer.Typer(
    name="pack-optimizer",
    help="Resource pack optimizer - Minify json, yaml and shader files, recompress images and package the result",
    add_completion=False,
    rich_markup_mode="rich",
    epilog="""
[bold]Examples:[/bold]
  [cyan]pack-optimizer run ./pack ./dist[/cyan]                       Optimize into ./dist
  [cyan]pack-optimizer run ./pack ./dist --zip pack.zip[/cyan]        Optimize into ./dist/pack.zip
  [cyan]pack-optimizer run ./pack ./dist --archive[/cyan]             Optimize into ./dist/output.zip
  [cyan]pack-optimizer run ./pack ./dist --no-confirm[/cyan]          Skip all confirmation prompts

[bold]Environment Variables:[/bold]
  Use [cyan]pack-optimizer config --env-vars[/cyan] to see all available variables.
    """
)
console = Console()

DEFAULT_CONFIG_FILES = [
    Path("pack_optimizer.toml"),
    Path("pack_optimizer.json"),
]


def exit_program(message: str) -> None:
    """Print the abort message and end the program with a success status."""
    console.print("\nExiting Program...\n")
    console.print(message, markup=False)
    raise typer.Exit(0)


@app.command()
def run(
    input_path: Optional[Path] = typer.Argument(None, help="The directory to read from"),
    output_path: Optional[Path] = typer.Argument(None, help="The directory to output to"),
    zip_name: Optional[str] = typer.Option(None, "--zip", "-z", help="Compress the output files into a .zip file with this name"),
    archive: bool = typer.Option(False, "--archive", "-a", help=f"Compress the output files into {DEFAULT_ZIP_NAME} unless --zip names the archive"),
    no_confirm: bool = typer.Option(False, "--no-confirm", help="Bypass confirmation prompts"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Worker threads per stage"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", "-x", help="File suffix to leave out of the clone (repeatable)"),
):
    """Optimize a resource pack directory into an output directory or archive."""
    config = _load_config(config_file)

    if input_path is not None:
        config.input_path = input_path
    if output_path is not None:
        config.output_path = output_path
    if zip_name is not None:
        config.zip_name = zip_name
    elif archive and config.zip_name is None:
        config.zip_name = DEFAULT_ZIP_NAME
    if no_confirm:
        config.no_confirm = True
    if workers is not None:
        config.max_workers = workers
    if exclude:
        config.exclude_suffixes = list(exclude)

    console.print("")
    console.print(f"input_dir: {config.input_path}", markup=False)
    console.print(f"output_dir: {config.output_path}", markup=False)
    console.print(f"zip_name: {config.zip_name}", markup=False)
    console.print(f"should_ask_user_to_confirm: {not config.no_confirm}")
    console.print("")

    errors = config.validate()
    if errors:
        exit_program("Invalid configuration:\n" + "\n".join(f"  • {error}" for error in errors))

    pipeline = PackPipeline(config, confirm=ConsoleConfirm(console))

    try:
        state = pipeline.run()
    except PipelineError as e:
        exit_program(str(e))
    except StageError as e:
        exit_program(str(e))
    except OSError as e:
        exit_program(f"I/O error: {e}")

    _display_pipeline_summary(state)

    if state.outcome is RunOutcome.ABORTED:
        if state.working_dir_kept:
            console.print(f"[yellow]Temporary directory kept at:[/yellow] {state.working_dir}")
        exit_program(state.abort_message or "User did not confirm to continue")

    if state.archive is not None:
        console.print(f"Zip file {state.archive.algorithm.upper()} hash: {state.archive.digest}")

    console.print("")
    console.print("Exiting...")


@app.command()
def config(
    show: bool = typer.Option(False, "--show", help="Show current configuration"),
    validate_config: bool = typer.Option(False, "--validate", help="Validate configuration file"),
    init: Optional[Path] = typer.Option(None, "--init", help="Write a starter TOML configuration file"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path"),
    env_vars: bool = typer.Option(False, "--env-vars", help="Show available environment variables")
):
    """Manage optimizer configuration."""
    try:
        if env_vars:
            _display_env_vars()
            return

        if init:
            if init.exists():
                console.print(f"[red]Refusing to overwrite existing file:[/red] {init}")
                raise typer.Exit(1)
            with open(init, 'w') as f:
                toml.dump(PipelineConfig().to_dict(), f)
            console.print(f"[green]✓[/green] Wrote starter configuration: {init}")
            return

        if show or validate_config:
            config = _load_config(config_file)

            if show:
                _display_config(config)

            if validate_config:
                errors = config.validate()
                if errors:
                    console.print("[red]Configuration validation errors:[/red]")
                    for error in errors:
                        console.print(f"  • {error}")
                    raise typer.Exit(1)
                else:
                    console.print("[green]✓ Configuration is valid[/green]")
        else:
            console.print("Use --show to display configuration, --validate to check it, --init to create one, or --env-vars to see environment variables.")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error managing configuration:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """Show pack optimizer version information."""
    console.print("[bold]Resource Pack Optimizer[/bold]")
    console.print(f"Version: {__version__}")
    console.print("Python: " + sys.version.split()[0])

    from importlib import metadata

    table = Table(show_header=False)
    table.add_column("Status", width=3)
    table.add_column("Package", style="cyan")
    table.add_column("Version", style="green")

    for name in ("Pillow", "PyYAML", "typer", "rich", "toml"):
        try:
            table.add_row("[green]✓[/green]", name, metadata.version(name))
        except metadata.PackageNotFoundError:
            table.add_row("[red]✗[/red]", name, "Not installed")

    console.print("\n[bold]Dependencies:[/bold]")
    console.print(table)


def _load_config(config_file: Optional[Path]) -> PipelineConfig:
    """Load configuration from file or use defaults, then apply environment overrides."""
    if config_file:
        if not config_file.exists():
            console.print(f"[red]Configuration file not found:[/red] {config_file}")
            raise typer.Exit(1)
        config_path = config_file
    else:
        config_path = next((path for path in DEFAULT_CONFIG_FILES if path.exists()), None)

    if config_path is None:
        config = PipelineConfig()
    else:
        try:
            config = PipelineConfig.from_file(config_path)
        except (ValueError, TypeError, OSError, toml.TomlDecodeError) as e:
            console.print(f"[red]Invalid configuration file:[/red] {config_path}")
            console.print(str(e), markup=False)
            raise typer.Exit(1)
        console.print(f"[dim]Using configuration: {config_path}[/dim]")

    config = PipelineConfig._apply_env_overrides(config)

    env_vars_used = [key for key in os.environ if key.startswith(ENV_PREFIX)]
    if env_vars_used:
        console.print(f"[dim]Environment overrides applied: {len(env_vars_used)} variables[/dim]")

    return config


def _display_pipeline_summary(state: PipelineState) -> None:
    """Display run summary."""
    console.print("\n[bold]Pipeline Execution Summary[/bold]")

    table = Table()
    table.add_column("Step", style="cyan")
    table.add_column("Items", style="green", justify="right")
    table.add_column("Duration", style="yellow")
    table.add_column("Message", style="dim")

    for step, result in state.step_results.items():
        table.add_row(step.value, str(result.processed), f"{result.duration:.2f}s", result.message)

    console.print(table)
    console.print(f"Total execution time: {state.total_duration:.2f}s")


def _display_config(config: PipelineConfig) -> None:
    """Display configuration in a formatted table."""
    table = Table(title="Pack Optimizer Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Input Path", str(config.input_path))
    table.add_row("Output Path", str(config.output_path))
    table.add_row("Zip Name", str(config.zip_name))
    table.add_row("No Confirm", str(config.no_confirm))
    table.add_row("Excluded Suffixes", ", ".join(config.exclude_suffixes))
    table.add_row("Max Workers", str(config.max_workers))
    table.add_row("Sequential Images", str(config.sequential_images))
    table.add_row("PNG Compress Level", str(config.png_compress_level))
    table.add_row("Digest Algorithm", config.digest_algorithm)
    table.add_row("Working Dir Prefix", config.working_dir_prefix)

    console.print(table)


def _display_env_vars() -> None:
    """Display available environment variables for configuration."""
    table = Table(title="Pack Optimizer Environment Variables")
    table.add_column("Environment Variable", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Example", style="green")

    for var_name, description, example in ENV_VARS:
        table.add_row(var_name, description, example)

    console.print(table)
    console.print("\n[dim]Set these environment variables to override configuration file settings.[/dim]")


if __name__ == "__main__":
    app()
