#!/usr/bin/env python3
"""
rv-geometry - Command Line Interface
"""

from pathlib import Path
from typing import Optional

import typer

from tools.check import run_check_jacobians, run_roundtrip

app = typer.Typer(
    name="rv-geometry",
    help="Lie-group residual and Jacobian self-checks",
    add_completion=False,
)


@app.command("check-jacobians")
def check_jacobians(
    config: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Path to geometry config YAML file"
    ),
    trials: Optional[int] = typer.Option(
        None,
        "--trials", "-n",
        min=1,
        help="Random inputs per model (overrides the config)"
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed", "-s",
        help="Random seed for reproducibility"
    ),
    progress: bool = typer.Option(
        True,
        "--progress/--no-progress",
        help="Show progress bars"
    ),
):
    """Compare analytic Jacobians with numerical differentiation."""
    exit_code = run_check_jacobians(config, trials, seed, progress)
    if exit_code != 0:
        raise typer.Exit(exit_code)


@app.command()
def roundtrip(
    samples: int = typer.Option(
        1000,
        "--samples", "-n",
        min=1,
        help="Number of random transforms"
    ),
    max_angle: float = typer.Option(
        3.0,
        "--max-angle",
        help="Maximum rotation angle (radians)"
    ),
    tolerance: float = typer.Option(
        1e-9,
        "--tolerance", "-t",
        help="Maximum accepted Frobenius error"
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed", "-s",
        help="Random seed for reproducibility"
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Path to geometry config YAML file"
    ),
):
    """Check that SE3.exp(ln(T)) reproduces T."""
    exit_code = run_roundtrip(samples, max_angle, tolerance, seed, config)
    if exit_code != 0:
        raise typer.Exit(exit_code)


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
