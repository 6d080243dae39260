# Tests for the bearer-protected MCP JSON-RPC endpoint.
# Created: 2026-10-18

import base64
import json

import pytest
from fastapi.testclient import TestClient

from remote_mcp.api.mcp import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PROTOCOL_VERSION,
    McpPrincipal,
    dispatch,
)
from remote_mcp.api.serve import create_api_app
from remote_mcp.config import Settings
from remote_mcp.oauth2.identity import StaticIdentityProvider
from remote_mcp.oauth2.tokens import TokenIssuer

SECRET = "test-signing-secret-0123456789abcdef"


@pytest.fixture
def test_app():
    return create_api_app(
        settings=Settings(jwt_secret=SECRET),
        identity=StaticIdentityProvider(signed_in="user-1"),
    )


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


@pytest.fixture
def access_token(client):
    registered = client.post("/dcr", json={"client_name": "mcp", "scope": "mcp"}).json()
    raw = f"{registered['client_id']}:{registered['client_secret']}".encode()
    resp = client.post(
        "/oauth/token",
        data={"grant_type": "client_credentials"},
        headers={"Authorization": "Basic " + base64.b64encode(raw).decode()},
    )
    return resp.json()["access_token"]


def _rpc(method, params=None, request_id=1):
    message = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


# ===================== Dispatch =====================


class TestDispatch:
    principal = McpPrincipal(client_id="c1", scope="mcp", user_id="user-1")

    def test_initialize(self):
        result = dispatch(_rpc("initialize"), self.principal)["result"]
        assert result["protocolVersion"] == PROTOCOL_VERSION
        assert result["serverInfo"]["name"] == "Remote MCP Server"

    def test_tools_list(self):
        tools = dispatch(_rpc("tools/list"), self.principal)["result"]["tools"]
        assert [t["name"] for t in tools] == ["echo", "whoami"]

    def test_echo(self):
        reply = dispatch(
            _rpc("tools/call", {"name": "echo", "arguments": {"message": "hi"}}), self.principal
        )
        assert reply["result"]["content"][0]["text"] == "Echo: hi"

    def test_whoami(self):
        reply = dispatch(_rpc("tools/call", {"name": "whoami"}), self.principal)
        text = reply["result"]["content"][0]["text"]
        assert json.loads(text) == {"client_id": "c1", "user_id": "user-1", "scope": "mcp"}

    def test_unknown_tool(self):
        reply = dispatch(_rpc("tools/call", {"name": "rm"}), self.principal)
        assert reply["error"]["code"] == INVALID_PARAMS

    def test_resources(self):
        listed = dispatch(_rpc("resources/list"), self.principal)["result"]["resources"]
        uri = listed[0]["uri"]
        read = dispatch(_rpc("resources/read", {"uri": uri}), self.principal)
        assert read["result"]["contents"][0]["text"] == "This is an example file content."

    def test_unknown_resource(self):
        reply = dispatch(_rpc("resources/read", {"uri": "file:///etc/passwd"}), self.principal)
        assert reply["error"]["code"] == INVALID_PARAMS

    def test_wrong_version(self):
        reply = dispatch({"jsonrpc": "1.0", "id": 7, "method": "initialize"}, self.principal)
        assert reply["error"]["code"] == INVALID_REQUEST
        assert reply["id"] == 7

    def test_unknown_method(self):
        reply = dispatch(_rpc("prompts/list"), self.principal)
        assert reply["error"]["code"] == METHOD_NOT_FOUND


# ===================== HTTP =====================


class TestMcpEndpoint:
    def test_requires_bearer(self, client):
        resp = client.post("/mcp", json=_rpc("initialize"))
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}
        assert resp.headers["access-control-allow-origin"] == "*"

    def test_invalid_token(self, client):
        resp = client.post(
            "/mcp", json=_rpc("initialize"), headers={"Authorization": "Bearer garbage"}
        )
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid token"}

    def test_token_for_deleted_client(self, client):
        token = TokenIssuer(SECRET).sign({"client_id": "ghost", "scope": ""}, 60)
        resp = client.post(
            "/mcp", json=_rpc("initialize"), headers={"Authorization": f"Bearer {token}"}
        )
        assert resp.status_code == 401
        assert resp.json() == {"error": "Client not found"}

    def test_initialize(self, client, access_token):
        resp = client.post(
            "/mcp",
            json=_rpc("initialize"),
            headers={"Authorization": f"Bearer {access_token}"},
        )
        assert resp.status_code == 200
        assert resp.json()["result"]["protocolVersion"] == PROTOCOL_VERSION

    def test_parse_error(self, client, access_token):
        resp = client.post(
            "/mcp",
            content=b"{not json",
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
        )
        assert resp.status_code == 200
        assert resp.json()["error"]["code"] == -32700
