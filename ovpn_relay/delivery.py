"""One-shot HTTP delivery of the generated client profile."""

import sys
import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from rich.panel import Panel

from .errors import PortInUseError, SetupError
from .identity import Credentials
from .utils import console, get_primary_ip, is_port_listening

logger = logging.getLogger(__name__)


class DeliveryServer:
    """A background ``http.server`` rooted at ``root`` on a fixed port.

    There is no authentication or TLS; the server lives only until the
    operator confirms the download.
    """

    def __init__(self, root: Path, port: int):
        self.root = root
        self.port = port
        self.process: Optional[subprocess.Popen] = None

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def command(self) -> List[str]:
        return [
            sys.executable, "-m", "http.server", str(self.port),
            "--directory", str(self.root),
        ]

    def start(self) -> int:
        """
        Start serving.

        Returns:
            PID of the server process

        Raises:
            PortInUseError: something already listens on the port
        """
        if self.running:
            raise SetupError("Delivery server is already running")
        if is_port_listening(self.port):
            raise PortInUseError(self.port)

        console.print(f"Starting a simple HTTP server on port {self.port}...")
        self.process = subprocess.Popen(
            self.command(),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        logger.info("HTTP server pid %d serving %s on port %d",
                    self.process.pid, self.root, self.port)
        return self.process.pid

    def stop(self, timeout: float = 5.0) -> None:
        """Terminate the server and wait for it to exit."""
        if self.process is None:
            return
        if self.process.poll() is None:
            console.print("Stopping the HTTP server...")
            self.process.terminate()
            try:
                self.process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logger.warning("HTTP server pid %d ignored SIGTERM, killing", self.process.pid)
                self.process.kill()
                self.process.wait()
        logger.info("HTTP server pid %d stopped", self.process.pid)
        self.process = None

    def url_for(self, filename: str, host: Optional[str] = None) -> str:
        """Download URL for a file under the served root."""
        if host is None:
            host = get_primary_ip() or "127.0.0.1"
        return f"http://{host}:{self.port}/{filename}"

    def __enter__(self) -> "DeliveryServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


def show_connection_info(credentials: Credentials, profile: Path, url: Optional[str] = None) -> None:
    """Print the login and where to fetch the client profile."""
    console.print()
    console.print(Panel.fit(
        "[bold green]OpenVPN client connection information[/bold green]",
        border_style="green",
    ))
    console.print(f"Username: [bold blue]{credentials.username}[/bold blue]")
    console.print(f"Password: [bold blue]{credentials.password}[/bold blue]")
    console.print(f"OpenVPN client configuration file path: {profile}")
    if url:
        console.print(f"Download link: [bold blue]{url}[/bold blue]")
