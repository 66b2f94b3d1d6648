# protoflex

protoflex keeps a small SQLite catalogue of VPN servers, their WireGuard
tunnels and the programs you want to run through them. Each tunnel gets its
own Linux network namespace, wired to the host through a veth pair with NAT,
and registered programs are started inside that namespace, so that only their
traffic goes through the tunnel.

## Requirements

- Linux with `bash`, `ip`, `iptables`, `sysctl`, `wg-quick` and `file` available
- `sudo` rights for the user running the service: namespace, firewall and
  program start-up commands all run through `sudo`
- A WireGuard configuration for each interface name you plan to use, so that
  `wg-quick up <interface>` works (for example `/etc/wireguard/wg0.conf`)

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Running the web service

```
protoflex-web
```

Options:

- `--database PATH` – SQLite database file (default `example.db`); it is
  created if missing and the tables are created if needed
- `--host ADDRESS` – address to listen on (default `0.0.0.0`)
- `--port PORT` – port to listen on (default `8080`)

The service logs at INFO level and closes the database when it stops.

## HTTP API

All bodies are JSON objects. Unknown keys are ignored, missing or `null`
keys keep their empty default, and keys match field names
case-insensitively when there is no exact match.

| Method | Path | Body | Purpose |
| ------ | ---- | ---- | ------- |
| GET | `/servers` | | List servers |
| POST | `/servers` | `{"name", "ip", "tunnel_list"}` | Store a server, set up the namespace for the interface named in `tunnel_list`, and record the tunnel if it is new |
| GET | `/tunnels` | | List tunnels |
| GET | `/executables` | | List registered programs with their tunnel's interface name |
| POST | `/executables` | `{"path", "arguments", "tunnel_id"}` | Register a program; here `tunnel_id` is the interface name |
| POST | `/executables/connect` | `{"tunnel_id", "path", "arguments"}` | Start a program in the tunnel's namespace; here `tunnel_id` is the numeric tunnel id and `arguments` is split on spaces |
| POST | `/connections/generate-token` | `{"ip", "port"}` | Ask a remote server to generate a token |
| POST | `/connections/validate-token` | `{"ip", "port", "token"}` | Ask a remote server to validate a token |

Listings return JSON arrays of objects with capitalised keys, for example a
server is `{"Id", "Name", "Ip", "TunnelList"}` and a tunnel is
`{"Id", "ServerId", "InterfaceName", "ConnectedConnections"}`.

Successful writes reply `{"message": ...}`. Failures reply `{"error": ...}`
with status 400 for a body that is not a JSON object or has a field of the
wrong type, and 500 for errors from the database, the system commands or the
remote server.

When registering through `POST /executables`, the `arguments` string is
stored with its characters separated by single spaces; an interface name
that matches no tunnel stores the program with tunnel id 0.

Example:

```
curl -X POST localhost:8080/servers \
     -H 'Content-Type: application/json' \
     -d '{"name": "office", "ip": "203.0.113.5", "tunnel_list": "wg0"}'
```

## Using the library

```python
from protoflex.database import open_database
from protoflex.repositories import ServerRepo, TunnelRepo, AddedExecutablesRepo
from protoflex.controllers import AddedExecutablesController, ServerViewController

connection = open_database("protoflex.db")
servers = ServerRepo(connection)
tunnels = TunnelRepo(connection)
executables = AddedExecutablesRepo(connection)

server_view = ServerViewController(tunnels, servers)
server_view.create_new_server("office", "203.0.113.5", "wg0")

programs = AddedExecutablesController(tunnels, servers, executables)
programs.add_executable("/usr/local/bin/tool.sh", ["--verbose"], "wg0")
process = programs.click_on_executable(1, "/usr/local/bin/tool.sh", "--verbose")
```

Modules:

- `protoflex.entities` – dataclasses for stored records (`Server`, `Tunnel`,
  `AddedExecutable`) and request bodies, and `parse_request`, which raises
  `InvalidRequestError` for bodies it cannot bind.
- `protoflex.database` – `open_database(path)` and `setup_database(connection)`
  create the `servers`, `tunnels` and `AddedExecutables` tables.
- `protoflex.repositories` – `ServerRepo`, `TunnelRepo` and
  `AddedExecutablesRepo`. Lookups by id raise `RecordNotFoundError`;
  `TunnelRepo.get_tunnel_by_interface_name` returns `None` when there is no
  match; `TunnelRepo.add_connection_to_tunnel` appends a string to the
  tunnel's JSON list of connections.
- `protoflex.client` – `ServerClient` calls
  `GET http://<ip>:<port>/generate` and
  `GET http://<ip>:<port>/validate?token=<token>` and raises `TokenError` on a
  failed request or any non-200 reply. An optional `timeout` is passed to
  each request.
- `protoflex.netns` – `setup_namespace(interface_name)` picks the first
  192.168.x.0/24 subnet (x from 2 to 254) without a route, creates the
  namespace `<interface>_namespace` and the veth pair
  `veth_<interface>_0`/`veth_<interface>_1`, assigns `.1` to the host side and
  `.2` to the namespace side, adds a default route, writes
  `nameserver 1.1.1.1` to the namespace's `resolv.conf`, enables IP
  forwarding, adds iptables forwarding and masquerade rules, and runs
  `wg-quick up <interface>` inside the namespace. Failing steps raise
  `CommandError`.
- `protoflex.runner` – `run_executable(namespace, path, args)` starts an
  executable `.sh` file through `bash`, or an executable file that `file`
  reports as an executable or ELF binary, inside the namespace without
  waiting for it, and returns the `subprocess.Popen` object. Any other file
  raises `UnsupportedFileTypeError`.
- `protoflex.controllers` – `AddedExecutablesController`,
  `ServerViewController` and `TokenController`, the logic behind the routes.
- `protoflex.web` – `create_app` builds the Flask application from ready-made
  controllers, `build_app(database_path)` builds it from a database path, and
  `main` is the `protoflex-web` command.

## What it does not do

- There is no graphical or HTML interface: the web service answers only the
  JSON routes listed above.
- Nothing updates a registered program's `active` flag; it stays `false`.
- There is no removal of servers, tunnels, registered programs, namespaces or
  firewall rules.
- The token routes only forward requests to a remote server and report
  whether it answered 200; the token itself is not returned or stored.