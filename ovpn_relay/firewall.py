"""Open the VPN port with whichever firewall manager is installed."""

import logging
from typing import Optional

from .utils import command_exists, console, run_command

logger = logging.getLogger(__name__)


def detect_firewall() -> Optional[str]:
    """Return "ufw", "firewalld" or None."""
    if command_exists("ufw"):
        return "ufw"
    if command_exists("firewall-cmd"):
        return "firewalld"
    return None


def open_port(port: int, protocol: str) -> bool:
    """
    Allow inbound ``port``/``protocol``.

    Returns:
        False when no supported firewall manager is present or it
        rejected the rule; the run continues either way
    """
    console.print("Opening OpenVPN port in firewall...")
    rule = f"{port}/{protocol}"
    firewall = detect_firewall()

    if firewall == "ufw":
        commands = [["ufw", "allow", rule], ["ufw", "reload"]]
    elif firewall == "firewalld":
        commands = [
            ["firewall-cmd", "--permanent", f"--add-port={rule}"],
            ["firewall-cmd", "--reload"],
        ]
    else:
        logger.warning("No firewall manager found, %s left closed", rule)
        console.print(
            f"[yellow]⚠[/yellow] No compatible firewall management tool found. "
            f"Please open port {rule} manually."
        )
        return False

    for command in commands:
        result = run_command(command, check=False)
        if result.returncode != 0:
            logger.warning("%s exited with %d: %s", " ".join(command),
                           result.returncode, result.stderr.strip())
            console.print(
                f"[yellow]⚠[/yellow] {firewall} did not accept the rule. "
                f"Please open port {rule} manually."
            )
            return False

    logger.info("Opened %s with %s", rule, firewall)
    console.print(f"[green]✓[/green] Opened {rule} ({firewall})")
    return True
