"""JSON web API over the controllers."""

import argparse
import logging
from contextlib import closing

from flask import Flask, jsonify, request

from .client import ServerClient
from .controllers import AddedExecutablesController, ServerViewController, TokenController
from .database import open_database
from .entities import (
    AddExecutableRequest,
    AddServerRequest,
    ConnectExecutableRequest,
    GenerateTokenRequest,
    InvalidRequestError,
    ValidateTokenRequest,
    parse_request,
)
from .repositories import AddedExecutablesRepo, ServerRepo, TunnelRepo

logger = logging.getLogger(__name__)

DATABASE_EXTENSION = "protoflex.database"
TUNNEL_EXISTS = "tunnel already exists"


def _executable_json(executable):
    return {
        "Id": executable.id,
        "TunnelId": executable.tunnel_id,
        "Path": executable.path,
        "Arguments": executable.arguments,
        "Active": executable.active,
        "Interface": executable.interface,
    }


def _tunnel_json(tunnel):
    return {
        "Id": tunnel.id,
        "ServerId": tunnel.server_id,
        "InterfaceName": tunnel.interface_name,
        "ConnectedConnections": tunnel.connected_connections,
    }


def _server_json(server):
    return {
        "Id": server.id,
        "Name": server.name,
        "Ip": server.ip,
        "TunnelList": server.tunnel_list,
    }


def _bind(model):
    return parse_request(model, request.get_data())


def _internal_error():
    return jsonify({"error": "internal error"}), 500


def create_app(token_controller, executables_controller, server_controller):
    """Build the Flask application serving the executables, tunnels, servers and token routes."""
    app = Flask(__name__)

    @app.get("/executables")
    def get_executables():
        try:
            executables = executables_controller.get_all_executables()
        except Exception:
            logger.exception("failed to list executables")
            return _internal_error()
        return jsonify([_executable_json(e) for e in executables])

    @app.post("/executables")
    def add_executable():
        try:
            body = _bind(AddExecutableRequest)
        except InvalidRequestError:
            return jsonify({"error": "invalid request"}), 400
        try:
            executables_controller.add_executable(
                body.path, list(body.arguments), body.tunnel_id
            )
        except Exception:
            logger.exception("failed to add executable")
            return _internal_error()
        return jsonify({"message": "Executable added successfully"})

    @app.post("/executables/connect")
    def connect_executable():
        try:
            body = _bind(ConnectExecutableRequest)
        except InvalidRequestError:
            return jsonify({"error": "invalid request"}), 400
        try:
            executables_controller.click_on_executable(
                body.tunnel_id, body.path, body.arguments
            )
        except Exception as exc:
            logger.exception("failed to connect executable")
            return jsonify({"error": f"internal error: {exc}"}), 500
        return jsonify({"message": "Executable connected successfully"})

    @app.get("/tunnels")
    def get_tunnels():
        try:
            tunnels = executables_controller.get_all_tunnels()
        except Exception:
            logger.exception("failed to list tunnels")
            return _internal_error()
        return jsonify([_tunnel_json(t) for t in tunnels])

    @app.get("/servers")
    def get_servers():
        try:
            servers = server_controller.get_all_servers()
        except Exception:
            logger.exception("failed to list servers")
            return _internal_error()
        return jsonify([_server_json(s) for s in servers])

    @app.post("/servers")
    def add_server():
        try:
            body = _bind(AddServerRequest)
        except InvalidRequestError:
            return jsonify({"error": "invalid request"}), 400
        try:
            server_controller.create_new_server(body.name, body.ip, body.tunnel_list)
        except Exception as exc:
            if str(exc) == TUNNEL_EXISTS:
                return jsonify({"error": TUNNEL_EXISTS}), 400
            logger.exception("failed to add server")
            return _internal_error()
        return jsonify({"message": "Server added successfully"})

    @app.post("/connections/generate-token")
    def generate_token():
        try:
            body = _bind(GenerateTokenRequest)
        except InvalidRequestError as exc:
            return jsonify({"error": f"invalid request: {exc}"}), 400
        try:
            token_controller.generate_token(body.ip, body.port)
        except Exception:
            logger.exception("failed to generate token")
            return _internal_error()
        return jsonify({"message": "Token generated successfully"})

    @app.post("/connections/validate-token")
    def validate_token():
        try:
            body = _bind(ValidateTokenRequest)
        except InvalidRequestError as exc:
            return jsonify({"error": f"invalid request: {exc}"}), 400
        try:
            token_controller.validate_token(body.ip, body.port, body.token)
        except Exception:
            logger.exception("failed to validate token")
            return _internal_error()
        return jsonify({"message": "Token validated successfully"})

    return app


def build_app(database_path):
    """Open the database at ``database_path`` and wire repositories, controllers and routes."""
    connection = open_database(database_path)
    server_repo = ServerRepo(connection)
    tunnel_repo = TunnelRepo(connection)
    executables_repo = AddedExecutablesRepo(connection)

    app = create_app(
        TokenController(ServerClient()),
        AddedExecutablesController(tunnel_repo, server_repo, executables_repo),
        ServerViewController(tunnel_repo, server_repo),
    )
    app.extensions[DATABASE_EXTENSION] = connection
    return app


def main(argv=None):
    """Serve the web API."""
    parser = argparse.ArgumentParser(
        prog="protoflex", description="Serve the tunnel and executable management API."
    )
    parser.add_argument("--database", default="example.db", help="SQLite database file")
    parser.add_argument("--host", default="0.0.0.0", help="address to listen on")
    parser.add_argument("--port", type=int, default=8080, help="port to listen on")
    options = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    app = build_app(options.database)
    with closing(app.extensions[DATABASE_EXTENSION]):
        app.run(host=options.host, port=options.port, threaded=False)
    return 0