"""System package installation."""

import logging
from typing import List

from rich.progress import Progress, SpinnerColumn, TextColumn

from .preflight import PackageManager
from .utils import console, run_command

logger = logging.getLogger(__name__)

# iptables-persistent asks debconf questions otherwise
NONINTERACTIVE = {"DEBIAN_FRONTEND": "noninteractive"}


def _run_step(command: List[str], what: str) -> bool:
    result = run_command(command, check=False, env=NONINTERACTIVE)
    if result.returncode != 0:
        logger.warning("%s exited with %d: %s", " ".join(command),
                       result.returncode, (result.stderr or "").strip())
        console.print(f"[yellow]⚠[/yellow] {what} reported errors, continuing")
        return False
    return True


def install_packages(manager: PackageManager, packages: List[str]) -> bool:
    """
    Refresh package metadata and install ``packages``.

    Failures are reported but do not stop the run; missing tools surface
    later in the stage that needs them.

    Returns:
        True when both the update and the install succeeded
    """
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
        console=console,
    ) as progress:
        task = progress.add_task("Updating system packages...", total=None)
        updated = _run_step(manager.update_command(), "Package index update")
        progress.update(task, description=f"Installing {', '.join(packages)}...")
        installed = _run_step(manager.install_command(packages), "Package installation")

    if updated and installed:
        logger.info("Installed packages: %s", ", ".join(packages))
        console.print("[green]✓[/green] System update complete")
    return updated and installed
