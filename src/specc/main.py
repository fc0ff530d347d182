import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from specc.diagnostics import CompilationError
from specc.pipeline import CompilerPipeline

app = typer.Typer(
    name="specc",
    help="Type and ownership checker for the specification language",
    add_completion=False,
)
console = Console()

@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", "-l", help="Logging level (DEBUG, INFO, WARNING, ...)"),
):
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )

@app.command()
def check(
    source_file: str = typer.Argument(..., help="Path to the source file"),
    visualize: bool = typer.Option(False, "--visualize", "-v", help="Write the annotated program to a JSON file"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Do not print individual diagnostics"),
):
    """
    Type-check a source file.
    """
    pipeline = CompilerPipeline(source_file, visualize=visualize, quiet=quiet)
    try:
        pipeline.run()
    except (CompilationError, FileNotFoundError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}", highlight=False)
        raise typer.Exit(code=1)
    console.print(f"[green]Successfully checked {source_file}[/green]", highlight=False)

if __name__ == "__main__":
    app()
