"""CLI entry point for mermaid-layout."""

import logging
import sys

import click

from mermaid_layout.config import LayoutConfig, parse_direction
from mermaid_layout.export import to_json
from mermaid_layout.layout import compute_layout
from mermaid_layout.parsers import parse


@click.command()
@click.argument("input", required=False, type=click.Path(exists=True))
@click.option("--width", "-W", "width", type=float, default=800.0, show_default=True, help="Available viewport width")
@click.option("--height", "-H", "height", type=float, default=600.0, show_default=True, help="Available viewport height")
@click.option("--direction", "-d", "direction", type=str, default=None, help="Override direction (LR, RL, TD, TB, BT)")
@click.option("--indent", "-i", "indent", type=int, default=2, show_default=True, help="JSON indentation (0 for compact)")
@click.option("--output", "-o", "output", type=str, default=None, help="Write output to this file instead of stdout")
@click.option("--verbose", "-v", "verbose", is_flag=True, help="Log parser and layout details to stderr")
def main(
    input: str | None,
    width: float,
    height: float,
    direction: str | None,
    indent: int,
    output: str | None,
    verbose: bool,
) -> None:
    """Lay out a Mermaid flowchart and print its geometry as JSON."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if input:
        try:
            with open(input) as f:
                text = f.read()
        except OSError as e:
            click.echo(f"error: cannot read '{input}': {e}", err=True)
            sys.exit(1)
    else:
        text = sys.stdin.read()

    state = parse(text)
    if state is None:
        click.echo("parse error: input does not start with 'flowchart' or 'graph'", err=True)
        sys.exit(1)

    config = LayoutConfig(width=width, height=height)
    config.apply(state)
    if direction is not None:
        try:
            state.set_direction(parse_direction(direction))
        except ValueError as e:
            click.echo(f"error: {e}", err=True)
            sys.exit(1)

    compute_layout(state, config.width, config.height)
    rendered = to_json(state, indent=indent if indent > 0 else None) + "\n"

    if output:
        try:
            with open(output, "w") as f:
                f.write(rendered)
        except OSError as e:
            click.echo(f"error: cannot write '{output}': {e}", err=True)
            sys.exit(1)
    else:
        click.echo(rendered, nl=False)


if __name__ == "__main__":
    main()
