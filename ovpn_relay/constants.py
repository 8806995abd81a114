"""Constants used throughout the application."""

import string
from pathlib import Path

from . import __version__

# Version
APP_VERSION = __version__

# OpenVPN
VPN_PORT = 1194
VPN_USERNAME = "openvpn"
OPENVPN_SERVICE = "openvpn@server"
OPENVPN_DIR = Path("/etc/openvpn")
EASYRSA_SOURCE = Path("/usr/share/easy-rsa")
PKI_DIRNAME = "openvpn-ca"
CHECK_SCRIPT_NAME = "checkpsw.sh"

# Client certificate names inside the OpenVPN directory
CLIENT_CERT_NAME = "client1.crt"
CLIENT_KEY_NAME = "client1.key"

# Protocols
SUPPORTED_PROTOCOLS = ("tcp", "udp")
DEFAULT_PROTOCOL = "tcp"

# Secrets
PASSPHRASE_LENGTH = 16
PASSPHRASE_ALPHABET = string.ascii_letters + string.digits
COMMON_NAME_BYTES = 4

# frp relay
FRP_VERSION = "0.51.3"
FRP_RELEASE_URL = (
    "https://github.com/fatedier/frp/releases/download/"
    "v{version}/frp_{version}_{arch}.tar.gz"
)
FRPC_SERVICE = "frpc"
FRPC_BINARY = "frpc"
FRPS_PORT = 7000
DEFAULT_REMOTE_PORT = 6000
FRP_ARCHITECTURES = {
    "x86_64": "linux_amd64",
    "armv7l": "linux_arm",
    "aarch64": "linux_arm64",
}

# Package managers, in detection order
PACKAGE_MANAGERS = {
    "apt-get": {"install": ["install", "-y"], "update": ["update", "-qq"]},
    "yum": {"install": ["install", "-y"], "update": ["makecache", "fast"]},
    "dnf": {"install": ["install", "-y"], "update": ["makecache"]},
}
PACKAGES = ["easy-rsa", "openvpn", "iptables-persistent"]

# Ephemeral delivery
DELIVERY_PORT = 8000

# Config file lookup
CONFIG_FILE = Path("/etc/ovpn-relay/config.yaml")
LOG_DIR = Path("/var/log/ovpn-relay")
