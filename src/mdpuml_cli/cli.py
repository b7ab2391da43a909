"""CLI entry point for mdpuml."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import typer
from rich.console import Console

import mdpuml
from mdpuml._cli import create_cli, version_callback
from mdpuml.errors import MdPumlError

app = create_cli(
    "mdpuml",
    "Add interactive PlantUML diagrams to your GitHub markdown files. "
    "If running with default arguments, run in the project root directory.",
)

_stderr_console = Console(stderr=True)


class ImageFormatChoice(str, Enum):
    """Image formats accepted by --image-formats."""

    png = "png"
    svg = "svg"
    both = "both"


def _absolute(path: Path | None) -> Path | None:
    return path.expanduser().resolve() if path is not None else None


@app.command()
def main(
    _version: bool | None = typer.Option(
        None,
        "--version",
        callback=version_callback("mdpuml", mdpuml.__version__),
        is_eager=True,
        help="Show version and exit.",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to an mdpuml.yaml configuration file.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    puml_server_url: str | None = typer.Option(
        None,
        "--puml-server-url",
        "-s",
        help="Base URL used to render diagrams. Defaults to the public PlantUML server "
        "(or http://localhost:8080 with --embed).",
    ),
    root_directory: Path | None = typer.Option(
        None,
        "--root-directory",
        "-x",
        help="The path to your project. [default: current directory]",
        file_okay=False,
    ),
    embed: bool = typer.Option(
        False,
        "--embed",
        "-e",
        help="Embed the puml diagrams in the markdown files, instead of linking to them.",
    ),
    hot_reload: bool = typer.Option(
        False,
        "--hot-reload",
        "-r",
        help="Rerun every --interval-seconds seconds.",
    ),
    interval_seconds: float | None = typer.Option(
        None,
        "--interval-seconds",
        "-v",
        help="If --hot-reload is set, how often to rerun. [default: 2]",
    ),
    puml_directory: Path | None = typer.Option(
        None,
        "--puml-directory",
        "-p",
        help="Directory containing puml files referenced in markdown. [default: root]",
    ),
    markdown_directory: Path | None = typer.Option(
        None,
        "--markdown-directory",
        "-m",
        help="Directory containing markdown files referencing puml files. [default: root]",
    ),
    ignore_gitignore: bool = typer.Option(
        False,
        "--ignore-gitignore",
        "-g",
        help="Don't use .gitignore to skip puml and md files.",
    ),
    gitignore_path: Path | None = typer.Option(
        None,
        "--gitignore-path",
        "-i",
        help="Use this as path to the .gitignore file. [default: root/.gitignore]",
    ),
    output_images: bool = typer.Option(
        False,
        "--output-images",
        "-d",
        help="Output images of diagrams to the dist directory.",
    ),
    dist_directory: Path | None = typer.Option(
        None,
        "--dist-directory",
        "-b",
        help="If --output-images is set, where to write images. [default: root/dist_puml]",
    ),
    image_formats: ImageFormatChoice | None = typer.Option(
        None,
        "--image-formats",
        "-f",
        help="If --output-images is set, the image format(s) to write. [default: png]",
    ),
    turn_off_link_shortening: bool = typer.Option(
        False,
        "--turn-off-link-shortening",
        "-t",
        help="Use the full PlantUML server link instead of a short link.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Log debug output.",
    ),
) -> None:
    """Render linked PlantUML diagrams and rewrite markdown references to them.

    Examples:
        mdpuml
        mdpuml -m docs -p docs/diagrams -d -f both
        mdpuml --embed --hot-reload
    """
    from mdpuml.config import load_settings
    from mdpuml.logging import configure_logging
    from mdpuml.runner import run

    # Path flags are relative to the working directory, not to --root-directory
    root_directory = _absolute(root_directory)
    puml_directory = _absolute(puml_directory)
    markdown_directory = _absolute(markdown_directory)
    gitignore_path = _absolute(gitignore_path)
    dist_directory = _absolute(dist_directory)

    # CLI flags only override the config file when they were actually given
    overrides = {
        "server_url": puml_server_url,
        "root_directory": root_directory,
        "embed": embed or None,
        "hot_reload": hot_reload or None,
        "interval_seconds": interval_seconds,
        "puml_directory": puml_directory,
        "markdown_directory": markdown_directory,
        "respect_gitignore": False if ignore_gitignore else None,
        "gitignore_path": gitignore_path,
        "output_images": output_images or None,
        "dist_directory": dist_directory,
        "image_formats": image_formats.value if image_formats else None,
        "shorten_links": False if turn_off_link_shortening else None,
        "log_level": "DEBUG" if verbose else None,
    }

    configure_logging("DEBUG" if verbose else "INFO")
    try:
        settings = load_settings(
            config,
            root_directory=root_directory or Path.cwd(),
            overrides=overrides,
        )
        configure_logging(settings.log_level)
        run(settings)
    except MdPumlError as e:
        _stderr_console.print(f"[bold red]FATAL:[/bold red] {e}")
        raise typer.Exit(1) from e
    except KeyboardInterrupt:
        _stderr_console.print("\n[dim]Interrupted, shutting down...[/dim]")
        raise typer.Exit(130) from None


def cli() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    cli()
