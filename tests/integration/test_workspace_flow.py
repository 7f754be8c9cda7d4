"""
End-to-end flow: two client windows against the in-process API server.
"""

from io import BytesIO

import httpx
import pytest
from openpyxl import load_workbook

from vbagen.core.exceptions import ValidationError
from vbagen.infrastructure.auth.http_auth import HttpAuthBackend
from vbagen.infrastructure.http.workbook_client import HttpWorkbookClient
from vbagen.infrastructure.local.gemini_api_provider import GeminiAPIProvider
from vbagen.infrastructure.local.project_repository import SqliteProjectRepository
from vbagen.infrastructure.local.template_provider import TemplateProvider
from vbagen.models.enums import GateState, MessageRole
from vbagen.services.workspace import Workspace, create_llm_provider


def _backend(settings, app) -> HttpAuthBackend:
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
    return HttpAuthBackend(settings, client=client)


@pytest.fixture
def make_workspace(settings, asgi_app, session_factory, storage, clock):
    def _make(window_id: str) -> Workspace:
        return Workspace(
            backend=_backend(settings, asgi_app),
            storage=storage,
            llm_provider=TemplateProvider(),
            settings=settings,
            project_repo=SqliteProjectRepository(session_factory),
            window_id=window_id,
            clock=clock,
            workbook_client=HttpWorkbookClient(
                settings,
                client=httpx.AsyncClient(
                    transport=httpx.ASGITransport(app=asgi_app), base_url="http://testserver"
                ),
            ),
        )

    return _make


@pytest.mark.asyncio
async def test_anonymous_user_builds_a_sort_macro(make_workspace, session_factory):
    window = make_workspace("window-1")
    assert await window.init() is None

    state = await window.chat.create_project("Sort Tool", "Sort column A")
    assert state == GateState.AWAITING_AUTH
    assert window.conversation.projects == []

    state = await window.gate.submit_sign_up("maker@example.com", "password123")
    assert state == GateState.AWAITING_KEY
    assert window.conversation.projects == []

    state = await window.gate.submit_secret_key("AIza-key")
    assert state == GateState.READY
    assert window.gate.state == GateState.IDLE
    project = window.conversation.active_project
    assert project is not None and project.title == "Sort Tool"
    assert project.messages == [] and project.artifact is None

    assert await window.chat.send_message("Sort column A") == GateState.READY

    project = window.conversation.active_project
    assert [m.role for m in project.messages] == [MessageRole.USER, MessageRole.ASSISTANT]
    assert "SortData" in project.artifact

    identity = window.session.identity
    stored = await SqliteProjectRepository(session_factory).get(identity.id, project.id)
    assert [m.content for m in stored.messages] == [m.content for m in project.messages]
    assert stored.artifact == project.artifact

    worksheet = load_workbook(BytesIO(await window.export_artifact())).active
    assert "SortData" in worksheet["A7"].value

    window.teardown()


@pytest.mark.asyncio
async def test_second_window_follows_sign_in_and_sign_out(make_workspace):
    first = make_workspace("window-1")
    second = make_workspace("window-2")
    await first.init()
    await second.init()

    await first.session.sign_up("shared@example.com", "password123")
    await first.session.update_secret_key("AIza-key")
    assert await first.chat.create_project("Report") == GateState.READY

    assert second.session.identity == first.session.identity
    assert second.session.identity.has_secret_key

    await second.refresh_projects()
    assert [p.title for p in second.conversation.projects] == ["Report"]

    await first.session.sign_out()

    assert first.session.identity is None
    assert second.session.identity is None
    assert second.conversation.projects == []

    first.teardown()
    second.teardown()


@pytest.mark.asyncio
async def test_signed_in_user_is_not_asked_again(make_workspace):
    first = make_workspace("window-1")
    await first.init()
    await first.session.sign_up("returning@example.com", "password123")
    await first.session.update_secret_key("AIza-key")
    first.teardown()

    reopened = make_workspace("window-3")
    await reopened.init()

    assert await reopened.chat.create_project("Average") == GateState.READY
    assert reopened.gate.transitions == [
        (GateState.IDLE, GateState.READY),
        (GateState.READY, GateState.IDLE),
    ]
    reopened.teardown()


def test_create_llm_provider(settings):
    assert isinstance(create_llm_provider(settings), TemplateProvider)

    gemini = create_llm_provider(settings.model_copy(update={"LLM_PROVIDER": "gemini-api"}))
    assert isinstance(gemini, GeminiAPIProvider)


def test_from_settings(settings):
    workspace = Workspace.from_settings(settings, window_id="window-9")

    assert isinstance(workspace.session._backend, HttpAuthBackend)
    assert workspace.session.window_id == "window-9"
    assert workspace.project_repo is None
    assert isinstance(workspace.workbook_client, HttpWorkbookClient)


@pytest.mark.asyncio
async def test_export_without_artifact_is_rejected(make_workspace):
    window = make_workspace("window-1")
    await window.init()

    with pytest.raises(ValidationError) as exc_info:
        await window.export_artifact()

    assert exc_info.value.field == "content"
    window.teardown()


@pytest.mark.asyncio
async def test_export_renders_in_process_without_client(settings, fake_backend, storage):
    window = Workspace(fake_backend, storage, TemplateProvider(), settings=settings)

    data = await window.export_workbook("add_formula", "SUM(A1:A5)")

    assert load_workbook(BytesIO(data)).active["B3"].value == "=SUM(A1:A5)"
