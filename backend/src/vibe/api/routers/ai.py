"""AI endpoints: streamed generation and the auxiliary provider calls."""

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from vibe.api.deps import get_orchestrator, get_principal_id, get_registry
from vibe.api.errors import to_http_exception
from vibe.api.schemas import (
    ExplainBody,
    ExplainResponse,
    FixBody,
    FixResponse,
    GenerateBody,
    ProvidersResponse,
    ValidateBody,
    ValidateResponse,
)
from vibe.api.sse import SSE_HEADERS, format_sse
from vibe.generation.errors import GenerationError
from vibe.generation.orchestrator import (
    GenerateRequest,
    GenerationOrchestrator,
    GenerationRun,
)
from vibe.llm import ProviderError
from vibe.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])


async def stream_run(run: GenerationRun) -> AsyncIterator[str]:
    """Render a run's chunks as SSE frames.

    Errors raised after the stream opened are reported as one final
    ``error`` frame.
    """
    events = run.events()
    async with aclosing(events):
        try:
            async for chunk in events:
                yield format_sse(chunk.type, chunk.model_dump())
        except (GenerationError, ProviderError) as e:
            yield format_sse("error", {"type": "error", "message": str(e), "code": e.code})
        except Exception as e:
            logger.exception(f"Generation stream for project {run.project.id} failed")
            yield format_sse(
                "error", {"type": "error", "message": str(e), "code": GenerationError.code}
            )


@router.post("/generate")
async def generate(
    body: GenerateBody,
    user_id: str = Depends(get_principal_id),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Generate code for a project as Server-Sent Events.

    Ownership, provider selection and prompt validation are checked before
    the stream opens and fail as plain HTTP errors.
    """
    request = GenerateRequest(
        project_id=body.project_id,
        prompt=body.prompt,
        user_id=user_id,
        provider=body.provider,
        design_tokens=body.design_tokens.to_tokens() if body.design_tokens else None,
    )
    try:
        run = await orchestrator.start(request)
    except GenerationError as e:
        raise to_http_exception(e) from e

    return StreamingResponse(
        stream_run(run),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/explain", response_model=ExplainResponse)
async def explain_code(
    body: ExplainBody,
    _user_id: str = Depends(get_principal_id),
    registry: ProviderRegistry = Depends(get_registry),
) -> ExplainResponse:
    """Explain a piece of code."""
    try:
        provider, explanation = await registry.explain_code(
            body.code, body.language, preferred=body.provider
        )
    except (GenerationError, ProviderError) as e:
        raise to_http_exception(e) from e
    return ExplainResponse(explanation=explanation, provider=provider.provider_id)


@router.post("/fix", response_model=FixResponse)
async def suggest_fix(
    body: FixBody,
    _user_id: str = Depends(get_principal_id),
    registry: ProviderRegistry = Depends(get_registry),
) -> FixResponse:
    """Suggest a fix for an error in a piece of code."""
    try:
        provider, fix = await registry.suggest_fix(
            body.error, body.code, kind=body.kind, preferred=body.provider
        )
    except (GenerationError, ProviderError) as e:
        raise to_http_exception(e) from e
    return FixResponse(**fix.model_dump(), provider=provider.provider_id)


@router.post("/validate", response_model=ValidateResponse)
async def validate_prompt(
    body: ValidateBody,
    registry: ProviderRegistry = Depends(get_registry),
) -> ValidateResponse:
    """Validate a prompt locally. No provider is called."""
    validation = registry.validate_prompt(body.prompt)
    return ValidateResponse(**validation.model_dump())


@router.get("/providers", response_model=ProvidersResponse)
async def list_providers(
    registry: ProviderRegistry = Depends(get_registry),
) -> ProvidersResponse:
    """List registered providers and probe which are available."""
    return ProvidersResponse(
        registered=registry.provider_ids,
        available=await registry.available_providers(),
    )
