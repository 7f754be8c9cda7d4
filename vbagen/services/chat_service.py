"""
Chat Service.

Runs one conversation turn through the gate: user message, generation,
assistant reply and artifact update, in that order.
"""

import logging
from typing import Optional
from uuid import UUID

from vbagen.core.exceptions import GenerationError
from vbagen.interfaces.project_repository import IProjectRepository
from vbagen.models.enums import GateState, GenerationErrorReason, MessageRole
from vbagen.models.project import Message, Project, ProjectCreate
from vbagen.services.conversation_store import ConversationStore
from vbagen.services.gating_controller import GatingController
from vbagen.services.session_store import SessionStore
from vbagen.services.vba_generator import VbaGenerator

logger = logging.getLogger(__name__)

FAILURE_MESSAGES: dict[GenerationErrorReason, str] = {
    GenerationErrorReason.INVALID_KEY: (
        "Your Gemini API key was rejected. Please check it in your profile and try again."
    ),
    GenerationErrorReason.QUOTA_EXCEEDED: (
        "The Gemini API quota for your key is exhausted. Please wait a moment and try again."
    ),
    GenerationErrorReason.MALFORMED_RESPONSE: (
        "Sorry, I couldn't generate VBA code for that. "
        "Please try again with different requirements."
    ),
    GenerationErrorReason.NETWORK: (
        "I couldn't reach the code generation service. Please check your connection and try again."
    ),
}


def failure_message(error: GenerationError) -> str:
    return FAILURE_MESSAGES.get(error.reason, FAILURE_MESSAGES[GenerationErrorReason.MALFORMED_RESPONSE])


class ChatService:
    """Service for gated project creation and message exchange."""

    def __init__(
        self,
        session_store: SessionStore,
        conversation: ConversationStore,
        gate: GatingController,
        generator: VbaGenerator,
        project_repo: Optional[IProjectRepository] = None,
    ):
        self.session_store = session_store
        self.conversation = conversation
        self.gate = gate
        self.generator = generator
        self.project_repo = project_repo

    async def create_project(self, title: str, description: str = "") -> GateState:
        """
        Create a project once the user is signed in with an API key.

        With a project repository the project is stored there first; it only
        appears in the conversation once the write succeeded.

        Returns:
            Gate state reached (READY means the action ran)

        Raises:
            ValidationError: If the title is blank or a field is invalid
        """

        async def action() -> Optional[Project]:
            project = self.conversation.new_project(title, description)
            if project is None:
                return None
            if self.project_repo is not None:
                await self.project_repo.create(
                    project.owner_id,
                    ProjectCreate(title=project.title, description=project.description),
                    project_id=project.id,
                )
            return self.conversation.add_project(project)

        return await self.gate.request(action)

    async def send_message(self, content: str) -> GateState:
        """
        Send a user message in the active project once the gate allows it.

        Returns:
            Gate state reached (READY means the turn was processed)
        """
        return await self.gate.request(lambda: self._converse(content))

    def _is_current(self, user_id: str, project_id: UUID) -> bool:
        identity = self.session_store.identity
        return (
            identity is not None
            and identity.id == user_id
            and self.conversation.active_project_id == project_id
        )

    async def _persist(self, user_id: str, project_id: UUID, message: Message) -> None:
        if self.project_repo is not None:
            await self.project_repo.append_message(user_id, project_id, message)

    async def _record(self, user_id: str, project_id: UUID, message: Message) -> Optional[Message]:
        """Persist ``message``, then append it if the project is still active."""
        await self._persist(user_id, project_id, message)
        if not self._is_current(user_id, project_id):
            logger.info(f"Discarding message for project {project_id}: no longer active")
            return None
        return self.conversation.record_message(message)

    async def _converse(self, content: str) -> Optional[Message]:
        identity = self.session_store.identity
        project = self.conversation.active_project
        if identity is None or project is None:
            logger.debug("send_message ignored: no identity or no active project")
            return None

        history = list(project.messages)
        user_message = Message(content=content, role=MessageRole.USER)
        if await self._record(identity.id, project.id, user_message) is None:
            return None

        artifact: Optional[str] = None
        try:
            result = await self.generator.generate(content, history, identity.secret_key)
            reply, artifact = result.explanation, result.generated_code
        except GenerationError as e:
            logger.warning(f"Generation failed for project {project.id}: {e.reason.value}")
            reply = failure_message(e)

        if not self._is_current(identity.id, project.id):
            logger.info(f"Discarding reply for project {project.id}: no longer active")
            return None

        assistant_message = await self._record(
            identity.id, project.id, Message(content=reply, role=MessageRole.ASSISTANT)
        )
        if assistant_message is None or artifact is None:
            return assistant_message

        if self.project_repo is not None:
            await self.project_repo.set_artifact(identity.id, project.id, artifact)
        if self._is_current(identity.id, project.id):
            self.conversation.set_artifact(artifact)
        return assistant_message
