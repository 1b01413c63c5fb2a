"""Tests for the MCP tools and request-scoped auth."""

import json
from types import SimpleNamespace

import pytest

from conftest import multipart_field
from mcp_lucid_import import server
from mcp_lucid_import.context import RequestAuth, bearer_token, resolve_request_auth
from mcp_lucid_import.errors import AuthenticationRequired, InvalidInput
from mcp_lucid_import.packager import read_packaged_document

CREATED = {"id": "doc-1", "title": "Flow", "product": "lucidchart"}


def http_ctx(authorization: str):
    """Stand-in for a FastMCP Context whose request carries ``authorization``."""
    request = SimpleNamespace(headers={"authorization": authorization})
    return SimpleNamespace(request_context=SimpleNamespace(request=request))


def uploaded_document(recorder) -> dict:
    return json.loads(read_packaged_document(multipart_field(recorder.last.content, "file")))


# ---------------------------------------------------------------------------
# Auth context
# ---------------------------------------------------------------------------

class TestRequestAuth:
    def test_bearer_token(self):
        assert bearer_token("Bearer abc") == "abc"
        assert bearer_token("bearer  abc ") == "abc"
        assert bearer_token("Basic abc") is None
        assert bearer_token("Bearer ") is None
        assert bearer_token(None) is None

    def test_header_wins(self):
        auth = resolve_request_auth({"authorization": "Bearer from-header"}, "from-server")
        assert auth == RequestAuth("from-header", "header")

    def test_fallback(self):
        assert resolve_request_auth(None, "from-server") == RequestAuth("from-server", "server")
        assert resolve_request_auth({}, "from-server").source == "server"

    def test_missing(self):
        auth = resolve_request_auth(None, None)
        with pytest.raises(AuthenticationRequired):
            auth.require_token()


# ---------------------------------------------------------------------------
# Authorization tools
# ---------------------------------------------------------------------------

class TestAuthTools:
    def test_get_auth_url(self, configured_service, make_recorder):
        configured_service(make_recorder())
        result = server.lucid_get_auth_url(state="xyz")
        assert "https://lucid.app/oauth2/authorize?" in result
        assert "state=xyz" in result

    @pytest.mark.asyncio
    async def test_exchange_code_then_profile(self, configured_service, make_recorder):
        recorder = make_recorder(200, {"access_token": "fresh", "token_type": "Bearer", "expires_in": 10, "scope": "user.profile"})
        service = configured_service(recorder)

        result = await server.lucid_exchange_code(code="abc")

        assert result.startswith("Authorization successful!")
        assert "Refresh token: not provided" in result
        assert service.oauth.get_access_token() == "fresh"

    @pytest.mark.asyncio
    async def test_exchange_code_failure(self, configured_service, make_recorder):
        configured_service(make_recorder(400, text="invalid_grant"))
        result = await server.lucid_exchange_code(code="abc")
        assert result.startswith("Error: Failed to exchange code for token")
        assert "invalid_grant" not in result

    def test_set_token(self, configured_service, make_recorder):
        service = configured_service(make_recorder())
        assert server.lucid_set_token(token=" tok ") == "Access token set."
        assert service.oauth.get_access_token() == "tok"

    def test_set_empty_token(self, configured_service, make_recorder):
        configured_service(make_recorder())
        assert server.lucid_set_token(token="  ").startswith("Error:")


# ---------------------------------------------------------------------------
# Lucid API tools
# ---------------------------------------------------------------------------

class TestProfileTool:
    @pytest.mark.asyncio
    async def test_requires_token(self, configured_service, make_recorder):
        recorder = make_recorder(200, {"id": "u"})
        configured_service(recorder)

        result = await server.lucid_get_user_profile()

        assert result.startswith("Error: Authentication required")
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_uses_header_token(self, configured_service, make_recorder):
        recorder = make_recorder(200, {"id": "u1", "name": "Ada", "email": "a@x.io"})
        configured_service(recorder, token="server-token")

        result = await server.lucid_get_user_profile(ctx=http_ctx("Bearer caller-token"))

        assert "Name: Ada" in result
        assert recorder.last.headers["authorization"] == "Bearer caller-token"

    @pytest.mark.asyncio
    async def test_uses_server_token(self, configured_service, make_recorder):
        recorder = make_recorder(200, {"id": "u1", "name": "Ada", "email": "a@x.io"})
        configured_service(recorder, token="server-token")

        await server.lucid_get_user_profile()

        assert recorder.last.headers["authorization"] == "Bearer server-token"

    @pytest.mark.asyncio
    async def test_remote_error_sanitized(self, configured_service, make_recorder):
        configured_service(make_recorder(401, text="token expired at 12:00"), token="t")
        result = await server.lucid_get_user_profile()
        assert result == "Error: Failed to get user profile: 401. Please check server logs for details."


class TestCreateProcessMap:
    @pytest.mark.asyncio
    async def test_imports_linear_process(self, configured_service, make_recorder):
        recorder = make_recorder(200, CREATED)
        configured_service(recorder, token="t")

        result = await server.lucid_create_process_map(title="Flow", steps=["A", "B", "C"])

        assert result.startswith("Process map created successfully!")
        assert "Edit URL: https://lucid.app/documents/doc-1/edit" in result
        document = uploaded_document(recorder)
        page = document["pages"][0]
        assert page["title"] == "Flow"
        assert [s["shapeType"] for s in page["shapes"]] == ["ellipse", "rectangle", "ellipse"]
        assert len(page["lines"]) == 2

    @pytest.mark.asyncio
    async def test_empty_steps_create_empty_document(self, configured_service, make_recorder):
        recorder = make_recorder(200, CREATED)
        configured_service(recorder, token="t")

        result = await server.lucid_create_process_map(title="Flow", steps=[], product="lucidspark", parentFolderId=5)

        assert result.startswith("Empty document created")
        assert json.loads(recorder.last.content) == {"title": "Flow", "product": "lucidspark", "parent": 5}

    @pytest.mark.asyncio
    async def test_invalid_product(self, configured_service, make_recorder):
        recorder = make_recorder(200, CREATED)
        configured_service(recorder, token="t")

        result = await server.lucid_create_process_map(title="Flow", steps=["A"], product="visio")

        assert result.startswith("Error: Invalid product")
        assert recorder.requests == []


class TestImportTools:
    @pytest.mark.asyncio
    async def test_import_diagram_passes_raw_json(self, configured_service, make_recorder):
        recorder = make_recorder(200, CREATED)
        configured_service(recorder, token="t")
        raw = {"version": "1.0", "pages": [{"id": "p1", "title": "T", "shapes": [], "lines": [], "settings": {"x": 1}}]}

        result = await server.lucid_import_diagram(title="Flow", documentJson=json.dumps(raw))

        assert result.startswith("Diagram imported successfully!")
        assert uploaded_document(recorder) == raw

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload,message",
        [
            ("{not json", "Error: Invalid documentJson"),
            ('{"pages": []}', "Error: Invalid document structure"),
            ('{"version": "1.0", "pages": {}}', "Error: Invalid document structure"),
            ("[]", "Error: Invalid document structure"),
        ],
    )
    async def test_import_diagram_rejects(self, configured_service, make_recorder, payload, message):
        recorder = make_recorder(200, CREATED)
        configured_service(recorder, token="t")

        result = await server.lucid_import_diagram(title="Flow", documentJson=payload)

        assert result.startswith(message)
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_custom_diagram_validates(self, configured_service, make_recorder):
        recorder = make_recorder(200, CREATED)
        configured_service(recorder, token="t")
        raw = {
            "version": "1.0",
            "pages": [{
                "id": "p1",
                "title": "T",
                "shapes": [{"id": "s1", "shapeType": "hexagon", "boundingBox": {"x": 1, "y": 2, "w": 3, "h": 4}}],
                "lines": [],
            }],
        }

        result = await server.lucid_create_custom_diagram(title="Flow", documentJson=json.dumps(raw))

        assert result.startswith("Custom diagram created successfully!")
        assert uploaded_document(recorder) == raw

    @pytest.mark.asyncio
    async def test_custom_diagram_rejects_bad_shape(self, configured_service, make_recorder):
        recorder = make_recorder(200, CREATED)
        configured_service(recorder, token="t")
        raw = {"version": "1.0", "pages": [{"id": "p1", "title": "T", "shapes": [{"id": "s1"}]}]}

        result = await server.lucid_create_custom_diagram(title="Flow", documentJson=json.dumps(raw))

        assert result.startswith("Error: Invalid document structure")
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_custom_diagram_needs_a_page(self, configured_service, make_recorder):
        configured_service(make_recorder(200, CREATED), token="t")
        result = await server.lucid_create_custom_diagram(title="Flow", documentJson='{"version": "1.0", "pages": []}')
        assert "at least one page" in result


# ---------------------------------------------------------------------------
# Step-by-step building
# ---------------------------------------------------------------------------

class TestBuildStepByStep:
    def test_builds_document(self):
        document = server.build_step_by_step(
            "Review",
            [
                {"type": "start", "x": 0, "y": 0, "text": "Begin"},
                {"type": "decision", "x": 0, "y": 100, "text": "OK?"},
                {"type": "cloud", "x": 200, "y": 100, "text": "Escalate"},
            ],
            [{"from": 0, "to": 1}, {"from": 1, "to": 2, "text": "no"}],
        )
        page = document.pages[0]
        assert page.title == "Review"
        assert [s.shape_type for s in page.shapes] == ["ellipse", "diamond", "cloud"]
        assert page.lines[1].endpoint1.shape_id == page.shapes[1].id
        assert page.lines[1].endpoint2.shape_id == page.shapes[2].id
        assert page.lines[1].text == "no"

    def test_shapes_must_be_list(self):
        with pytest.raises(InvalidInput, match="Shapes must be an array"):
            server.build_step_by_step("P", {"type": "process"})

    def test_bad_shape_index_reported(self):
        with pytest.raises(InvalidInput, match="index 1"):
            server.build_step_by_step("P", [{"type": "process", "x": 0, "y": 0}, {"type": "process", "x": 0}])

    def test_connector_out_of_range(self):
        with pytest.raises(InvalidInput, match="out of range"):
            server.build_step_by_step("P", [{"type": "process", "x": 0, "y": 0}], [{"from": 0, "to": 3}])

    def test_wrongly_typed_shape_property(self):
        with pytest.raises(InvalidInput, match=r"^Invalid shape at index 1: text"):
            server.build_step_by_step(
                "P",
                [{"type": "process", "x": 0, "y": 0}, {"type": "process", "x": 0, "y": 90, "text": 5}],
            )

    def test_wrongly_typed_connector_text(self):
        shapes = [{"type": "process", "x": 0, "y": 0}, {"type": "process", "x": 0, "y": 90}]
        with pytest.raises(InvalidInput, match=r"^Invalid connector at index 0: text"):
            server.build_step_by_step("P", shapes, [{"from": 0, "to": 1, "text": 7}])

    def test_tool_reports_wrongly_typed_input(self):
        result = server.lucid_build_diagram_step_by_step(
            pageTitle="P", shapes=[{"type": "process", "x": 0, "y": 0, "fillColor": 123}]
        )
        assert result.startswith("Error: Invalid shape at index 0: color")

    def test_tool_returns_json(self):
        result = server.lucid_build_diagram_step_by_step(
            pageTitle="P", shapes=[{"type": "process", "x": 1, "y": 2, "text": "t"}]
        )
        assert result.startswith("Diagram built successfully!")
        document = json.loads(result[result.index("{"):])
        assert document["version"] == "1.0"
        assert document["pages"][0]["shapes"][0]["text"] == "t"

    def test_tool_error_message(self):
        result = server.lucid_build_diagram_step_by_step(pageTitle="P", shapes="nope")
        assert result == "Error: Shapes must be an array"


class TestRegistration:
    @pytest.mark.asyncio
    async def test_tools_listed(self):
        names = {tool.name for tool in await server.mcp.list_tools()}
        assert names == {
            "lucid_get_auth_url",
            "lucid_exchange_code",
            "lucid_set_token",
            "lucid_get_user_profile",
            "lucid_create_process_map",
            "lucid_create_custom_diagram",
            "lucid_build_diagram_step_by_step",
            "lucid_import_diagram",
        }

    @pytest.mark.asyncio
    async def test_product_schema_is_restricted(self):
        tools = {tool.name: tool for tool in await server.mcp.list_tools()}
        for name in ("lucid_create_process_map", "lucid_create_custom_diagram", "lucid_import_diagram"):
            product = tools[name].inputSchema["properties"]["product"]
            assert product["enum"] == ["lucidchart", "lucidspark"]
            assert product["default"] == "lucidchart"
