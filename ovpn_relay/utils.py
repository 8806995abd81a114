"""Utility functions for ovpn-relay."""

import os
import sys
import shutil
import socket
import logging
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import psutil
from rich.console import Console

from .errors import CommandError, PreflightError

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(log_dir: Path, debug: bool = False) -> Optional[Path]:
    """Setup application logging.

    Returns the log file path, or None when the log directory is not writable.
    """
    level = logging.DEBUG if debug else logging.INFO
    handlers: List[logging.Handler] = []
    log_file: Optional[Path] = None

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"ovpn-relay-{datetime.now():%Y%m%d}.log"
        handlers.append(logging.FileHandler(log_file))
    except OSError:
        log_file = None

    if debug:
        handlers.append(logging.StreamHandler(sys.stdout))

    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )
    return log_file


def check_root() -> bool:
    """Check if running as root."""
    return os.geteuid() == 0


def require_root() -> None:
    """Raise if not running as root."""
    if not check_root():
        raise PreflightError("Please run this command as root")


def run_command(
    command: List[str],
    check: bool = True,
    capture_output: bool = True,
    timeout: Optional[int] = None,
    cwd: Optional[Path] = None,
    input: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """Run a command and return the result.

    With ``check`` set, a non-zero exit raises CommandError.
    """
    logger.debug("Running command: %s", " ".join(command))

    if env is not None:
        env = {**os.environ, **env}

    try:
        return subprocess.run(
            command,
            input=input,
            capture_output=capture_output,
            text=True,
            timeout=timeout,
            cwd=cwd,
            env=env,
            check=check,
        )
    except subprocess.TimeoutExpired:
        logger.error("Command timed out: %s", " ".join(command))
        raise
    except subprocess.CalledProcessError as e:
        logger.error("Command failed: %s", " ".join(command))
        if e.stderr:
            logger.error("Error output: %s", e.stderr.strip())
        raise CommandError(command, e.returncode, e.stderr or "") from e


def command_exists(name: str) -> bool:
    """Check if an executable is on PATH."""
    return shutil.which(name) is not None


def ensure_directory(path: Path, mode: int = 0o755) -> None:
    """Ensure a directory exists with proper permissions."""
    path.mkdir(parents=True, exist_ok=True)
    path.chmod(mode)


def get_hostname() -> str:
    """Get the short hostname of this machine."""
    return socket.gethostname()


def get_primary_ip() -> Optional[str]:
    """Get the first non-loopback IPv4 address on an interface that is up."""
    stats = psutil.net_if_stats()
    for iface, addrs in psutil.net_if_addrs().items():
        if iface == "lo" or iface not in stats or not stats[iface].isup:
            continue
        for addr in addrs:
            if addr.family == socket.AF_INET and not addr.address.startswith("127."):
                return addr.address
    return None


def is_port_listening(port: int) -> bool:
    """Check whether a TCP socket is listening on ``port``."""
    try:
        for conn in psutil.net_connections(kind="tcp"):
            if conn.status == psutil.CONN_LISTEN and conn.laddr and conn.laddr.port == port:
                return True
        return False
    except psutil.AccessDenied:
        logger.debug("net_connections denied, probing port %d with bind", port)

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind(("", port))
        except OSError:
            return True
    return False


def wait_for_keypress(prompt: str) -> str:
    """Print ``prompt`` and block until a single key is pressed."""
    console.print(prompt, end="")

    if not sys.stdin.isatty():
        ch = sys.stdin.readline()[:1]
        console.print()
        return ch

    import termios
    import tty

    fd = sys.stdin.fileno()
    old_settings = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        ch = sys.stdin.read(1)
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
    console.print()
    return ch
