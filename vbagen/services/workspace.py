"""
Workspace.

Wires the client-side stores of one window together and owns their
lifecycle: resolve the session, follow identity changes, load the user's
persisted projects.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

from vbagen.core.config import Settings, get_settings
from vbagen.core.logger import logger
from vbagen.infrastructure.http.workbook_client import HttpWorkbookClient
from vbagen.interfaces.auth_backend import IAuthBackend
from vbagen.interfaces.llm_provider import ILLMProvider
from vbagen.interfaces.project_repository import IProjectRepository
from vbagen.interfaces.session_storage import ISessionStorage
from vbagen.models.enums import WorkbookOperation
from vbagen.models.user import Identity
from vbagen.services.chat_service import ChatService
from vbagen.services.conversation_store import ConversationStore
from vbagen.services.gating_controller import GatingController
from vbagen.services.session_store import SessionStore
from vbagen.services.vba_generator import VbaGenerator
from vbagen.services.workbook_service import render_workbook


def create_llm_provider(settings: Settings) -> ILLMProvider:
    """Build the configured LLM provider."""
    if settings.LLM_PROVIDER == "template":
        from vbagen.infrastructure.local.template_provider import TemplateProvider

        return TemplateProvider()

    from vbagen.infrastructure.local.gemini_api_provider import GeminiAPIProvider

    return GeminiAPIProvider(settings.GEMINI_MODEL, settings=settings)


class Workspace:
    """Session, conversation, gate and chat of one client window."""

    def __init__(
        self,
        backend: IAuthBackend,
        storage: ISessionStorage,
        llm_provider: ILLMProvider,
        settings: Settings | None = None,
        project_repo: Optional[IProjectRepository] = None,
        window_id: str | None = None,
        clock: Callable[[], float] = time.monotonic,
        workbook_client: Optional[HttpWorkbookClient] = None,
    ):
        self.settings = settings or get_settings()
        self.project_repo = project_repo
        self.workbook_client = workbook_client
        self.session = SessionStore(
            backend, storage, settings=self.settings, window_id=window_id, clock=clock
        )
        self.conversation = ConversationStore(self.session)
        self.gate = GatingController(self.session)
        self.chat = ChatService(
            self.session,
            self.conversation,
            self.gate,
            VbaGenerator(llm_provider),
            project_repo=project_repo,
        )
        self._unsubscribe: Optional[Callable[[], None]] = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None, window_id: str | None = None) -> "Workspace":
        """Workspace talking to a remote API server over HTTP."""
        from vbagen.infrastructure.auth.http_auth import HttpAuthBackend
        from vbagen.infrastructure.local.session_storage import SharedSessionStorage

        settings = settings or get_settings()
        return cls(
            backend=HttpAuthBackend(settings),
            storage=SharedSessionStorage(settings.SESSION_STORAGE_PATH or None),
            llm_provider=create_llm_provider(settings),
            settings=settings,
            window_id=window_id,
            workbook_client=HttpWorkbookClient(settings),
        )

    async def _on_identity_change(self, identity: Optional[Identity]) -> None:
        if identity is not None:
            await self.refresh_projects()

    async def refresh_projects(self) -> None:
        """Load the signed-in user's persisted projects, if persistence is configured."""
        identity = self.session.identity
        if identity is None or self.project_repo is None:
            return
        projects = await self.project_repo.list(identity.id)
        if self.session.identity is None or self.session.identity.id != identity.id:
            logger.debug("Discarding project list loaded for a previous identity")
            return
        self.conversation.load_projects(projects)

    async def init(self) -> Optional[Identity]:
        """Resolve the persisted session and start following identity changes."""
        if self._unsubscribe is None:
            self._unsubscribe = self.session.subscribe(self._on_identity_change)
        return await self.session.init()

    def teardown(self) -> None:
        """Detach every listener. Persisted state is left untouched."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.conversation.close()
        self.session.teardown()

    async def export_workbook(self, operation: WorkbookOperation | str, content: Any) -> bytes:
        """
        Render an instructional workbook, remotely when a workbook client is set.

        Raises:
            ValidationError: Missing or invalid operation/content
            InfrastructureError: The remote workbook service failed
        """
        if self.workbook_client is not None:
            return await self.workbook_client.render(operation, content)
        return render_workbook(operation, content)

    async def export_artifact(self) -> bytes:
        """Workbook with the active project's generated code."""
        project = self.conversation.active_project
        return await self.export_workbook(
            WorkbookOperation.CREATE_VBA, project.artifact if project else None
        )
