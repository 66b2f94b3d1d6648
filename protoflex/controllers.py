"""Application logic behind the web endpoints."""

import logging
import sqlite3

from .entities import AddedExecutable, Server, Tunnel
from .netns import setup_namespace
from .runner import run_executable

logger = logging.getLogger(__name__)

NAMESPACE_SUFFIX = "_namespace"


class AddedExecutablesController:
    """Registers executables for tunnels and starts them in the tunnel's namespace."""

    def __init__(
        self,
        tunnel_repo,
        server_repo,
        added_executables_repo,
        *,
        launcher=run_executable,
    ):
        self._tunnels = tunnel_repo
        self._servers = server_repo
        self._executables = added_executables_repo
        self._launcher = launcher

    def add_executable(self, executable_path, executable_args, interface_name):
        """Register ``executable_path`` for the tunnel using ``interface_name``.

        An unknown interface name leaves the executable with tunnel id 0.
        """
        tunnel_id = next(
            (
                tunnel.id
                for tunnel in self._tunnels.get_all_tunnels()
                if tunnel.interface_name == interface_name
            ),
            0,
        )
        executable = AddedExecutable(
            tunnel_id=tunnel_id,
            path=executable_path,
            arguments=" ".join(executable_args),
            active=False,
        )
        self._executables.create_added_executable(executable)

    def click_on_executable(self, tunnel_id, path, args):
        """Start ``path`` with space-separated ``args`` in the namespace of tunnel ``tunnel_id``."""
        tunnel = self._tunnels.get_tunnel_by_id(tunnel_id)
        namespace = tunnel.interface_name + NAMESPACE_SUFFIX
        return self._launcher(namespace, path, args.split(" "))

    def get_all_executables(self):
        """Return every registered executable with its tunnel's interface name filled in."""
        executables = self._executables.get_all_added_executables()
        for executable in executables:
            tunnel = self._tunnels.get_tunnel_by_id(executable.tunnel_id)
            executable.interface = tunnel.interface_name
        logger.debug("executables: %s", executables)
        return executables

    def get_all_tunnels(self):
        return self._tunnels.get_all_tunnels()


class ServerViewController:
    """Adds servers and prepares the namespace for their tunnel."""

    def __init__(self, tunnel_repo, server_repo, *, namespace_setup=setup_namespace):
        self._tunnels = tunnel_repo
        self._servers = server_repo
        self._namespace_setup = namespace_setup

    def create_new_server(self, server_name, server_ip, interface_name):
        """Store the server, set up its namespace and record the tunnel if it is new."""
        try:
            existing = self._tunnels.get_tunnel_by_interface_name(interface_name)
        except sqlite3.Error as exc:
            logger.error("Error looking up tunnel %s: %s", interface_name, exc)
            existing = None

        server = Server(name=server_name, ip=server_ip, tunnel_list=interface_name)
        try:
            server_id = self._servers.create_server(server)
        except sqlite3.Error as exc:
            logger.error("Error creating server: %s", exc)
            raise

        self._namespace_setup(interface_name)

        if existing is None:
            self._tunnels.create_tunnel(
                Tunnel(server_id=server_id, interface_name=interface_name)
            )

    def get_all_servers(self):
        try:
            return self._servers.get_all_servers()
        except sqlite3.Error as exc:
            logger.error("Error getting servers: %s", exc)
            raise


class TokenController:
    """Forwards token requests to a remote server client."""

    def __init__(self, client):
        self._client = client

    def generate_token(self, ip, port):
        self._client.generate_token(ip, port)

    def validate_token(self, ip, port, token):
        self._client.validate_token(ip, port, token)