import pytest

from protoflex.client import TokenError
from protoflex.controllers import (
    AddedExecutablesController,
    ServerViewController,
    TokenController,
)
from protoflex.database import open_database
from protoflex.netns import CommandError
from protoflex.repositories import AddedExecutablesRepo, ServerRepo, TunnelRepo
from protoflex.web import DATABASE_EXTENSION, build_app, create_app, main


class FakeTokenClient:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def generate_token(self, server_ip, server_port):
        self.calls.append(("generate", server_ip, server_port))
        if self.fail:
            raise TokenError("failed to generate token")

    def validate_token(self, server_ip, server_port, token):
        self.calls.append(("validate", server_ip, server_port, token))
        if self.fail:
            raise TokenError("token validation failed")


class Recorder:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def __call__(self, *args):
        self.calls.append(args)
        if self.error is not None:
            raise self.error


def _make(namespace_error=None, token_fail=False):
    db = open_database(":memory:")
    server_repo, tunnel_repo = ServerRepo(db), TunnelRepo(db)
    launcher = Recorder()
    token_client = FakeTokenClient(fail=token_fail)
    app = create_app(
        TokenController(token_client),
        AddedExecutablesController(
            tunnel_repo, server_repo, AddedExecutablesRepo(db), launcher=launcher
        ),
        ServerViewController(
            tunnel_repo, server_repo, namespace_setup=Recorder(namespace_error)
        ),
    )
    return app.test_client(), launcher, token_client, db


@pytest.fixture
def env():
    client, launcher, token_client, db = _make()
    yield client, launcher, token_client
    db.close()


def _add_server(client, name="alpha", ip="10.0.0.1", tunnel="wg0"):
    return client.post("/servers", json={"name": name, "ip": ip, "tunnel_list": tunnel})


def test_servers_empty(env):
    client, _, _ = env
    response = client.get("/servers")
    assert response.status_code == 200
    assert response.get_json() == []


def test_add_server_then_list(env):
    client, _, _ = env
    response = _add_server(client)
    assert response.status_code == 200
    assert response.get_json() == {"message": "Server added successfully"}
    assert client.get("/servers").get_json() == [
        {"Id": 1, "Name": "alpha", "Ip": "10.0.0.1", "TunnelList": "wg0"}
    ]


@pytest.mark.parametrize("body", [b"not json", b"", b"[1, 2]", b'{"ip": 5}'])
def test_add_server_invalid_request(env, body):
    client, _, _ = env
    response = client.post("/servers", data=body, content_type="application/json")
    assert response.status_code == 400
    assert response.get_json() == {"error": "invalid request"}


def test_add_server_namespace_failure():
    client, _, _, db = _make(namespace_error=CommandError("failed to set up iptables"))
    response = _add_server(client)
    db.close()
    assert response.status_code == 500
    assert response.get_json() == {"error": "internal error"}


def test_tunnels_listed_after_server(env):
    client, _, _ = env
    _add_server(client, tunnel="wg0")
    _add_server(client, name="beta", ip="10.0.0.2", tunnel="wg1")
    tunnels = client.get("/tunnels").get_json()
    assert [t["InterfaceName"] for t in tunnels] == ["wg0", "wg1"]
    assert [t["ServerId"] for t in tunnels] == [1, 2]


def test_add_executable_and_list(env):
    client, _, _ = env
    _add_server(client)
    response = client.post(
        "/executables",
        json={"path": "/usr/bin/tool", "arguments": "ab", "tunnel_id": "wg0"},
    )
    assert response.status_code == 200
    assert response.get_json() == {"message": "Executable added successfully"}

    executables = client.get("/executables").get_json()
    assert len(executables) == 1
    assert executables[0]["Path"] == "/usr/bin/tool"
    assert executables[0]["Arguments"] == "a b"
    assert executables[0]["Interface"] == "wg0"
    assert executables[0]["TunnelId"] == 1
    assert executables[0]["Active"] is False


def test_add_executable_invalid_request(env):
    client, _, _ = env
    response = client.post("/executables", json={"path": 3})
    assert response.status_code == 400
    assert response.get_json() == {"error": "invalid request"}


def test_executables_unknown_tunnel_is_internal_error(env):
    client, _, _ = env
    client.post("/executables", json={"path": "/usr/bin/tool", "tunnel_id": "missing"})
    response = client.get("/executables")
    assert response.status_code == 500
    assert response.get_json() == {"error": "internal error"}


def test_connect_executable(env):
    client, launcher, _ = env
    _add_server(client)
    response = client.post(
        "/executables/connect",
        json={"tunnel_id": 1, "path": "/usr/bin/tool", "arguments": "--verbose --debug"},
    )
    assert response.status_code == 200
    assert response.get_json() == {"message": "Executable connected successfully"}
    assert launcher.calls == [("wg0_namespace", "/usr/bin/tool", ["--verbose", "--debug"])]


def test_connect_executable_unknown_tunnel(env):
    client, launcher, _ = env
    response = client.post("/executables/connect", json={"tunnel_id": 9, "path": "/x"})
    assert response.status_code == 500
    assert response.get_json()["error"].startswith("internal error: ")
    assert launcher.calls == []


def test_connect_executable_rejects_string_id(env):
    client, _, _ = env
    response = client.post("/executables/connect", json={"tunnel_id": "1"})
    assert response.status_code == 400


def test_generate_token(env):
    client, _, token_client = env
    response = client.post(
        "/connections/generate-token", json={"ip": "127.0.0.1", "port": "8088"}
    )
    assert response.status_code == 200
    assert response.get_json() == {"message": "Token generated successfully"}
    assert token_client.calls == [("generate", "127.0.0.1", "8088")]


def test_validate_token(env):
    client, _, token_client = env
    response = client.post(
        "/connections/validate-token",
        json={"ip": "127.0.0.1", "port": "8088", "token": "token"},
    )
    assert response.status_code == 200
    assert response.get_json() == {"message": "Token validated successfully"}
    assert token_client.calls == [("validate", "127.0.0.1", "8088", "token")]


@pytest.mark.parametrize(
    "route", ["/connections/generate-token", "/connections/validate-token"]
)
def test_token_routes_invalid_request(env, route):
    client, _, token_client = env
    response = client.post(route, data=b"{", content_type="application/json")
    assert response.status_code == 400
    assert response.get_json()["error"].startswith("invalid request: ")
    assert token_client.calls == []


@pytest.mark.parametrize(
    "route", ["/connections/generate-token", "/connections/validate-token"]
)
def test_token_routes_client_failure(route):
    client, _, _, db = _make(token_fail=True)
    response = client.post(route, json={"ip": "127.0.0.1", "port": "1"})
    db.close()
    assert response.status_code == 500
    assert response.get_json() == {"error": "internal error"}


def test_build_app_creates_database(tmp_path):
    path = tmp_path / "protoflex.db"
    app = build_app(path)
    try:
        response = app.test_client().get("/servers")
        assert response.status_code == 200
        assert response.get_json() == []
        assert path.exists()
    finally:
        app.extensions[DATABASE_EXTENSION].close()


def test_main_help_exits_cleanly():
    with pytest.raises(SystemExit) as excinfo:
        main(["--help"])
    assert excinfo.value.code == 0