"""Project endpoints: conversation log and live event channel."""

import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from vibe.api.deps import get_channel, get_principal_id, get_store
from vibe.api.schemas import CodeUpdateBody, CodeUpdateResponse, TurnOut
from vibe.api.sse import SSE_HEADERS, format_sse
from vibe.channels import Broadcaster, ChannelEvent, project_topic
from vibe.db.projects import ProjectRecord, ProjectStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["projects"])

CODE_UPDATED_EVENT = "code-updated"


def require_project(project_id: str, user_id: str, store: ProjectStore) -> ProjectRecord:
    project = store.get_owned_project(project_id, user_id)
    if project is None:
        raise HTTPException(status_code=404, detail=f"Project not found: {project_id}")
    return project


async def channel_stream(broadcaster: Broadcaster, topic: str) -> AsyncIterator[str]:
    """Relay a topic's events as SSE frames until the client goes away."""
    async with broadcaster.subscribe(topic) as subscription:
        # Comment frame so the client knows the subscription is live
        yield ": subscribed\n\n"
        async for event in subscription:
            yield format_sse(event.event, event.data)
    logger.debug(f"Listener left {topic}")


@router.get("/{project_id}/messages", response_model=list[TurnOut])
async def list_messages(
    project_id: str,
    user_id: str = Depends(get_principal_id),
    store: ProjectStore = Depends(get_store),
) -> list[TurnOut]:
    """Conversation turns of a project in chronological order."""
    require_project(project_id, user_id, store)
    return [
        TurnOut(
            id=turn.id,
            role=turn.role.value,
            content=turn.content,
            metadata=turn.metadata,
            created_at=turn.created_at,
        )
        for turn in store.list_turns(project_id)
    ]


@router.get("/{project_id}/events")
async def subscribe_events(
    project_id: str,
    user_id: str = Depends(get_principal_id),
    store: ProjectStore = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_channel),
) -> StreamingResponse:
    """Listen to a project's generation and editor events via SSE."""
    require_project(project_id, user_id, store)
    return StreamingResponse(
        channel_stream(broadcaster, project_topic(project_id)),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/{project_id}/code-updates", response_model=CodeUpdateResponse)
async def relay_code_update(
    project_id: str,
    body: CodeUpdateBody,
    user_id: str = Depends(get_principal_id),
    store: ProjectStore = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_channel),
) -> CodeUpdateResponse:
    """Relay an editor change to everyone listening on the project."""
    require_project(project_id, user_id, store)
    delivered = broadcaster.publish(
        project_topic(project_id),
        ChannelEvent(
            event=CODE_UPDATED_EVENT,
            data={
                "projectId": project_id,
                "path": body.path,
                "content": body.content,
                "userId": user_id,
            },
        ),
    )
    return CodeUpdateResponse(delivered=delivered)
