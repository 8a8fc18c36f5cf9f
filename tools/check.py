"""
Numerical self-check commands.
Compares analytic Jacobians with finite differences and measures exp/log round trips.
"""

import logging
from pathlib import Path
from typing import Optional

import numpy as np
from rich.console import Console
from rich.table import Table

from rv_geometry.common.config import GeometryConfig, resolve_geometry_config
from rv_geometry.estimation.log_map import ln
from rv_geometry.evaluation.jacobian_check import run_jacobian_checks
from rv_geometry.evaluation.sampling import make_rng, random_se3
from rv_geometry.utils.lie_groups import SE3

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


def _load_config(config: Optional[Path]) -> Optional[GeometryConfig]:
    try:
        return resolve_geometry_config(config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]✗ Error loading configuration: {e}[/red]")
        return None


def run_check_jacobians(
    config: Optional[Path] = None,
    trials: Optional[int] = None,
    seed: Optional[int] = None,
    show_progress: bool = True,
) -> int:
    """
    Compare every analytic Jacobian with its numerical fallback.

    Args:
        config: Path to geometry config YAML file
        trials: Override of the number of random inputs per model
        seed: Override of the random seed
        show_progress: Show progress bars

    Returns:
        0 if every Jacobian is within tolerance, 1 otherwise
    """
    geometry_config = _load_config(config)
    if geometry_config is None:
        return 1
    setup_logging(geometry_config.log_level)

    updates = {}
    if trials is not None:
        updates["trials"] = trials
    if seed is not None:
        updates["seed"] = seed
    if updates:
        check = geometry_config.jacobian_check.model_copy(update=updates)
        geometry_config = geometry_config.model_copy(update={"jacobian_check": check})

    results = run_jacobian_checks(geometry_config, show_progress=show_progress)

    table = Table(title="Analytic vs numerical Jacobians")
    table.add_column("Model", style="cyan")
    table.add_column("Jacobian", style="magenta")
    table.add_column("Trials", justify="right")
    table.add_column("Max rel. error", style="yellow", justify="right")
    table.add_column("Status")
    for result in results:
        status = "[green]✓ pass[/green]" if result.passed else "[red]✗ fail[/red]"
        table.add_row(result.model, result.block, str(result.trials),
                      f"{result.max_relative_error:.3e}", status)
    console.print(table)

    if all(result.passed for result in results):
        console.print("[green]✓ All analytic Jacobians match[/green]")
        return 0
    console.print("[red]✗ Some analytic Jacobians deviate from the numerical reference[/red]")
    return 1


def run_roundtrip(
    samples: int = 1000,
    max_angle: float = 3.0,
    tolerance: float = 1e-9,
    seed: Optional[int] = None,
    config: Optional[Path] = None,
) -> int:
    """
    Measure ||exp(ln(T)) - T|| over random SE3 transforms.

    The config only supplies the log level.

    Returns:
        0 if the worst error is within tolerance, 1 otherwise
    """
    geometry_config = _load_config(config)
    if geometry_config is None:
        return 1
    setup_logging(geometry_config.log_level)

    rng = make_rng(seed)
    worst = 0.0
    for _ in range(samples):
        T = random_se3(rng, max_angle=max_angle)
        T_back = SE3.exp(ln(T))
        worst = max(worst, float(np.linalg.norm(T_back.matrix() - T.matrix())))

    logger.info(f"Round trip over {samples} transforms: max error {worst:.3e}")
    if worst <= tolerance:
        console.print(f"[green]✓ exp(ln(T)) round trip: max error {worst:.3e}[/green]")
        return 0
    console.print(f"[red]✗ exp(ln(T)) round trip: max error {worst:.3e} "
                  f"exceeds {tolerance:.1e}[/red]")
    return 1
