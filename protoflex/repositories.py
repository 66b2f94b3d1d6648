"""Data access for servers, tunnels and registered executables."""

import json

from .entities import AddedExecutable, Server, Tunnel

_SERVER_COLUMNS = "id, ip, name, tunnel_list"
_TUNNEL_COLUMNS = "id, server_id, interface_name, connected_connections"
_EXECUTABLE_COLUMNS = "id, tunnel_id, path, arguments, active"


class RecordNotFoundError(LookupError):
    """Raised when a requested row does not exist."""


def _server(row):
    server_id, ip, name, tunnel_list = row
    return Server(id=server_id, ip=ip, name=name, tunnel_list=tunnel_list)


def _tunnel(row):
    tunnel_id, server_id, interface_name, connections = row
    return Tunnel(
        id=tunnel_id,
        server_id=server_id,
        interface_name=interface_name,
        connected_connections=connections,
    )


def _executable(row):
    executable_id, tunnel_id, path, arguments, active = row
    return AddedExecutable(
        id=executable_id,
        tunnel_id=tunnel_id,
        path=path,
        arguments=arguments,
        active=bool(active),
    )


class ServerRepo:
    """Stores servers."""

    def __init__(self, connection):
        self._db = connection

    def create_server(self, server):
        """Insert ``server`` and return the new row id."""
        with self._db:
            cursor = self._db.execute(
                "INSERT INTO servers (ip, name, tunnel_list) VALUES (?, ?, ?)",
                (server.ip, server.name, server.tunnel_list),
            )
        return cursor.lastrowid

    def get_server_by_id(self, server_id):
        row = self._db.execute(
            f"SELECT {_SERVER_COLUMNS} FROM servers WHERE id = ?", (server_id,)
        ).fetchone()
        if row is None:
            raise RecordNotFoundError(f"no server with id {server_id}")
        return _server(row)

    def get_all_servers(self):
        rows = self._db.execute(f"SELECT {_SERVER_COLUMNS} FROM servers ORDER BY id")
        return [_server(row) for row in rows]


class TunnelRepo:
    """Stores tunnels and the connections attached to them."""

    def __init__(self, connection):
        self._db = connection

    def create_tunnel(self, tunnel):
        with self._db:
            self._db.execute(
                "INSERT INTO tunnels (server_id, interface_name, connected_connections) "
                "VALUES (?, ?, ?)",
                (tunnel.server_id, tunnel.interface_name, tunnel.connected_connections),
            )

    def get_tunnel_by_id(self, tunnel_id):
        row = self._db.execute(
            f"SELECT {_TUNNEL_COLUMNS} FROM tunnels WHERE id = ?", (tunnel_id,)
        ).fetchone()
        if row is None:
            raise RecordNotFoundError(f"no tunnel with id {tunnel_id}")
        return _tunnel(row)

    def get_tunnel_by_interface_name(self, name):
        """Return the tunnel using interface ``name``, or None if there is none."""
        row = self._db.execute(
            f"SELECT {_TUNNEL_COLUMNS} FROM tunnels WHERE interface_name = ? ORDER BY id",
            (name,),
        ).fetchone()
        return None if row is None else _tunnel(row)

    def get_all_tunnels(self):
        rows = self._db.execute(f"SELECT {_TUNNEL_COLUMNS} FROM tunnels ORDER BY id")
        return [_tunnel(row) for row in rows]

    def add_connection_to_tunnel(self, tunnel_name, connection):
        """Append ``connection`` to the JSON list of the tunnel named ``tunnel_name``."""
        tunnel = self.get_tunnel_by_interface_name(tunnel_name)
        if tunnel is None:
            raise RecordNotFoundError(f"no tunnel with interface name {tunnel_name!r}")

        connections = _decode_connections(tunnel.connected_connections)
        connections.append(connection)
        encoded = json.dumps(connections, separators=(",", ":"), ensure_ascii=False)

        with self._db:
            self._db.execute(
                "UPDATE tunnels SET connected_connections = ? WHERE interface_name = ?",
                (encoded, tunnel_name),
            )


def _decode_connections(text):
    if text == "[]":
        return []
    try:
        decoded = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid JSON format: {exc}") from exc
    if decoded is None:
        return []
    if not isinstance(decoded, list) or not all(isinstance(item, str) for item in decoded):
        raise ValueError("invalid JSON format: expected a list of strings")
    return decoded


class AddedExecutablesRepo:
    """Stores executables registered for tunnels."""

    def __init__(self, connection):
        self._db = connection

    def create_added_executable(self, executable):
        with self._db:
            self._db.execute(
                "INSERT INTO AddedExecutables (tunnel_id, path, arguments, active) "
                "VALUES (?, ?, ?, ?)",
                (
                    executable.tunnel_id,
                    executable.path,
                    executable.arguments,
                    executable.active,
                ),
            )

    def get_all_added_executables(self):
        rows = self._db.execute(
            f"SELECT {_EXECUTABLE_COLUMNS} FROM AddedExecutables ORDER BY id"
        )
        return [_executable(row) for row in rows]