from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape

from .context import BuildContext
from .log import setup_logging, topic
from .pipeline import build_pipeline, exit_code_for, first_error
from .procfile import default_process_types
from . import paths


BUILDPACK_NAME = "Ruby/Node.js"
DETECT_FILES = (paths.PACKAGE_JSON, paths.RUBY_VERSION_FILE, paths.GEMS_FILE)

app = typer.Typer(name="slugbuild", help="Buildpack that vendors Ruby and Node.js into an app slug.", no_args_is_help=True)
console = Console()
logger = logging.getLogger(__name__)


def cmd_compile(
    build_dir: Path,
    cache_dir: Path,
    env_dir: Optional[Path] = None,
    config_path: Optional[Path] = None,
    verbose: bool = False,
) -> int:
    setup_logging(logging.DEBUG if verbose else None)
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
        ctx = BuildContext.create(build_dir.resolve(), cache_dir.resolve(), env_dir, config_path=config_path)
    except (OSError, RuntimeError) as e:
        typer.echo(f"Error: {e}", err=True)
        return 1

    results = build_pipeline(ctx).execute(ctx)
    code = exit_code_for(results)
    if code == 0:
        logger.info(topic("Build succeeded!"))
    else:
        failed = first_error(results)
        reason = failed.get("error") if failed else "environment validation failed"
        console.print(f"[bold red] !     Build failed:[/bold red] {escape(str(reason))}", highlight=False)
    return code


def cmd_detect(build_dir: Path) -> int:
    if any((build_dir / name).is_file() for name in DETECT_FILES):
        typer.echo(BUILDPACK_NAME)
        return 0
    typer.echo("no")
    return 1


def cmd_release(build_dir: Path) -> int:
    try:
        ctx = BuildContext(build_dir=build_dir, cache_dir=build_dir)
        processes = default_process_types(ctx)
    except RuntimeError as e:
        typer.echo(f"Error: {e}", err=True)
        return 1
    release = {"addons": [], "default_process_types": processes}
    typer.echo(yaml.safe_dump(release, default_flow_style=False, explicit_start=True), nl=False)
    return 0


@app.command("compile", help="Vendor runtimes, install dependencies and run make compile")
def compile_command(
    build_dir: Path = typer.Argument(..., exists=True, file_okay=False, help="App source directory to build in place"),
    cache_dir: Path = typer.Argument(..., file_okay=False, help="Directory persisted between builds"),
    env_dir: Optional[Path] = typer.Argument(None, help="Directory with one file per config var"),
    config: Optional[Path] = typer.Option(None, "--config", help="Extra YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    code = cmd_compile(build_dir, cache_dir, env_dir, config_path=config, verbose=verbose)
    raise typer.Exit(code)


@app.command("detect", help="Exit 0 if this buildpack applies to the app")
def detect_command(
    build_dir: Path = typer.Argument(..., exists=True, file_okay=False, help="App source directory"),
):
    raise typer.Exit(cmd_detect(build_dir))


@app.command("release", help="Print release metadata as YAML")
def release_command(
    build_dir: Path = typer.Argument(..., exists=True, file_okay=False, help="App source directory"),
):
    raise typer.Exit(cmd_release(build_dir))


def main(argv: list[str] | None = None) -> int:
    """Programmatic entry point that returns the exit code."""
    try:
        app(args=argv, prog_name="slugbuild")
    except SystemExit as e:
        if isinstance(e.code, int):
            return e.code
        return 0 if e.code is None else 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
