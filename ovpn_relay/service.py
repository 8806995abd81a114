"""systemd service control."""

import logging

from .utils import console, run_command

logger = logging.getLogger(__name__)


def start(unit: str) -> None:
    """
    Start a systemd unit.

    Args:
        unit: Unit name (e.g., "openvpn@server")
    """
    run_command(["systemctl", "start", unit])
    logger.info("Started %s", unit)
    console.print(f"[green]✓[/green] Started {unit}")


def stop(unit: str, missing_ok: bool = False) -> bool:
    """
    Stop a systemd unit.

    Args:
        unit: Unit name
        missing_ok: Tolerate failures such as an unknown unit

    Returns:
        True if systemctl reported success
    """
    result = run_command(["systemctl", "stop", unit], check=not missing_ok)
    if result.returncode != 0:
        logger.info("Stop %s skipped: %s", unit, result.stderr.strip())
        return False
    logger.info("Stopped %s", unit)
    return True


def enable(unit: str) -> None:
    """
    Enable a systemd unit at boot.

    Args:
        unit: Unit name
    """
    run_command(["systemctl", "enable", unit])
    logger.info("Enabled %s", unit)
    console.print(f"[green]✓[/green] Enabled {unit} at boot")


def disable(unit: str, missing_ok: bool = False) -> bool:
    """
    Disable a systemd unit at boot.

    Args:
        unit: Unit name
        missing_ok: Tolerate failures such as an unknown unit

    Returns:
        True if systemctl reported success
    """
    result = run_command(["systemctl", "disable", unit], check=not missing_ok)
    if result.returncode != 0:
        logger.info("Disable %s skipped: %s", unit, result.stderr.strip())
        return False
    logger.info("Disabled %s", unit)
    return True


def daemon_reload() -> None:
    """Reload systemd unit files."""
    run_command(["systemctl", "daemon-reload"])


def start_and_enable(unit: str) -> None:
    """Start a unit now and on every boot."""
    start(unit)
    enable(unit)


def is_active(unit: str) -> bool:
    """Check if a unit is active."""
    result = run_command(["systemctl", "is-active", "--quiet", unit], check=False)
    return result.returncode == 0


def status_text(unit: str) -> str:
    """Return ``systemctl status`` output for a unit."""
    result = run_command(["systemctl", "status", unit, "--no-pager"], check=False)
    return result.stdout
