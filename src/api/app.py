"""
FastAPI application for the culture-connect service.

Endpoints:
    GET  /health         liveness
    POST /introductions  score colleagues for a new employee and introduce the top matches
    POST /messages       one turn of the chat assistant (housing dialogue + general replies)
    POST /send-message   direct message to a single identity

Collaborators are built once by ``build_services`` and can be replaced
wholesale by passing a ``ServiceContainer`` to ``create_app`` (tests).
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from src import __version__
from src.clients.notion_directory import NotionDirectory
from src.clients.qloo_client import QlooClient
from src.clients.slack_transport import SlackTransport
from src.clients.state_store import create_state_store
from src.clients.text_generator import TextGenerator
from src.common.config import Config
from src.common.error_handling import TransportError
from src.common.types import Profile, RankedCandidate
from src.conversation.controller import HousingConversationController
from src.conversation.housing import HousingRecommender
from src.conversation.memory import MemoryService
from src.conversation.message_router import MessageRouter
from src.conversation.state_service import ConversationStateService
from src.dispatch.fallback_chain import DeliveryTargets, DispatchChain
from src.matching.commonality_scorer import CommonalityScorer
from src.matching.introductions import IntroductionService

from .models import (
    HealthResponse,
    MessageRequest,
    MessageResponse,
    SendMessageRequest,
    SendMessageResponse,
)

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Everything the endpoints need, wired once per process."""

    introductions: IntroductionService
    router: MessageRouter
    transport: SlackTransport
    closables: tuple = ()

    async def aclose(self) -> None:
        for client in self.closables:
            await client.aclose()


def build_services() -> ServiceContainer:
    """Wire the production collaborators from Config."""
    qloo = QlooClient()
    transport = SlackTransport()
    directory = NotionDirectory() if Config.directory_enabled() else None
    insight_text = TextGenerator(model=Config.INSIGHT_MODEL)
    response_text = TextGenerator(model=Config.RESPONSE_MODEL)
    store = create_state_store(Config.REDIS_URL)

    state_service = ConversationStateService(store)
    housing = HousingConversationController(
        state_service, HousingRecommender(qloo, response_text)
    )
    router = MessageRouter(housing, MemoryService(store), state_service, insight_text)

    introductions = IntroductionService(
        scorer=CommonalityScorer(qloo, insight_text),
        directory=directory,
        text_generator=insight_text,
        dispatch=DispatchChain(transport, DeliveryTargets.from_config()),
    )

    closables = [qloo, transport, store]
    if directory is not None:
        closables.append(directory)
    return ServiceContainer(
        introductions=introductions,
        router=router,
        transport=transport,
        closables=tuple(closables),
    )


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def serialize_person(raw: Dict[str, Any], ranked: RankedCandidate) -> Dict[str, Any]:
    """Echo the caller's person record with the scoring fields attached."""
    return {
        **raw,
        "qlooCommonalities": ranked.result.commonalities,
        "qlooInsights": ranked.result.insight,
        "connectionScore": ranked.result.connection_score,
    }


def create_app(services: Optional[ServiceContainer] = None) -> FastAPI:
    app = FastAPI(title="Culture Connect", version=__version__)

    if Config.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=Config.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
        )

    app.state.services = services

    @app.on_event("startup")
    async def startup() -> None:
        if app.state.services is None:
            Config.validate()
            logger.info(Config.summary())
            app.state.services = build_services()

    @app.on_event("shutdown")
    async def shutdown() -> None:
        if app.state.services is not None:
            await app.state.services.aclose()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc))

    @app.post("/introductions")
    async def introductions(
        body: Dict[str, Any] = Body(...),
        services: ServiceContainer = Depends(get_services),
    ) -> Dict[str, Any]:
        employee_raw = body.get("employee")
        people_raw = body.get("people")
        if not employee_raw or not people_raw or not isinstance(people_raw, list):
            raise HTTPException(status_code=400, detail="Missing employee or people data")

        try:
            employee = Profile.model_validate(employee_raw)
            people: List[Profile] = [Profile.model_validate(p) for p in people_raw]
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid employee or people data: {e}")

        try:
            outcome = await services.introductions.introduce(
                employee, people, default_channel=body.get("defaultChannel")
            )
        except Exception as e:
            logger.exception(f"Introductions failed for {employee.name}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

        return {
            **body,
            "people": [serialize_person(people_raw[r.position], r) for r in outcome.people],
            "qlooEnhanced": True,
            "enhancedAt": outcome.enhanced_at,
            "slackMessages": [
                report.model_dump(mode="json", exclude_none=True) for report in outcome.messages
            ],
        }

    @app.post("/messages", response_model=MessageResponse)
    async def messages(
        request: MessageRequest,
        services: ServiceContainer = Depends(get_services),
    ) -> MessageResponse:
        reply = await services.router.handle(request.user_id, request.text, request.channel_id)
        return MessageResponse(response=reply.response, continue_flow=reply.continue_flow)

    @app.post("/send-message", response_model=SendMessageResponse)
    async def send_message(
        request: SendMessageRequest,
        services: ServiceContainer = Depends(get_services),
    ) -> SendMessageResponse:
        if not request.message:
            raise HTTPException(status_code=400, detail="Missing message field")
        if not request.userId:
            raise HTTPException(status_code=400, detail="Missing userId field")

        try:
            channel_id = await services.transport.open_conversation(request.userId)
            await services.transport.post_message(channel_id, request.message)
        except TransportError as e:
            logger.error(f"Error sending message to {request.userId}: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to send message: {e}")

        logger.info(f"Message sent to user {request.userId}")
        return SendMessageResponse(
            success=True,
            userId=request.userId,
            message="Message sent successfully",
        )

    return app
