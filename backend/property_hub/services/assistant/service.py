"""Assistant hub: message routing between the coaching, assistant and data roles.

Runs entirely on local logic. No LLM is called; answers are keyword based
and built from the listings the data role fetched most recently.

Architecture:
- Every exchange is recorded as an AssistantMessage (last 50 kept)
- A SharedContext carries recent listings across roles
- Listing lookups go through the injected ListingService (cache + limiter)
"""

import logging
from datetime import datetime, timezone
from typing import Any

from property_hub.models import (
    AssistantMessage,
    AssistantRole,
    Listing,
    ListingFilters,
    MessageKind,
    PerformanceReport,
    SharedContext,
)
from property_hub.services.listings import ListingService

logger = logging.getLogger(__name__)

MAX_MESSAGES = 50

LISTING_KEYWORDS = ("property", "properties", "listing", "imóvel", "imoveis", "imóveis")
PRICE_KEYWORDS = ("price", "cost", "value", "preço", "preco", "valor")
RECOMMEND_KEYWORDS = ("best", "recommend", "melhor", "recomend")
DETAIL_KEYWORDS = ("property", "listing", "house", "apartment", "imóvel", "casa", "apartamento")

BASE_RECOMMENDATIONS = [
    "Keep exploring different search filters to find more specific listings",
    "Use radius search to find listings close to your clients",
    "Review listings published on several portals to spot high-demand opportunities",
]


class AssistantHub:
    """Coordinates the three assistant roles over a shared context."""

    def __init__(self, listing_service: ListingService, max_messages: int = MAX_MESSAGES) -> None:
        self._listings = listing_service
        self._max_messages = max_messages
        self._messages: list[AssistantMessage] = []
        self._context = SharedContext()

    def _send(
        self,
        sender: AssistantRole,
        recipient: AssistantRole,
        kind: MessageKind,
        content: dict[str, Any],
        context: dict[str, Any] | None = None,
    ) -> AssistantMessage:
        message = AssistantMessage(
            sender=sender,
            recipient=recipient,
            kind=kind,
            content=content,
            timestamp=datetime.now(timezone.utc),
            context=context,
        )
        self._messages.append(message)
        if len(self._messages) > self._max_messages:
            self._messages = self._messages[-self._max_messages:]
        return message

    def update_context(self, **fields: Any) -> SharedContext:
        """Merge fields into the shared context."""
        self._context = self._context.model_copy(update=fields)
        return self._context

    @property
    def context(self) -> SharedContext:
        return self._context

    @property
    def messages(self) -> list[AssistantMessage]:
        return list(self._messages)

    async def search_listings(self, filters: ListingFilters | None = None) -> list[Listing]:
        """Data role: fetch listings and publish them to the shared context."""
        filters = filters or ListingFilters()
        self._send(
            AssistantRole.DATA,
            AssistantRole.ASSISTANT,
            MessageKind.NOTIFICATION,
            {"action": "search_started", "filters": filters.model_dump(mode="json", exclude_none=True)},
        )

        listings = await self._listings.search(filters)
        self.update_context(recent_listings=listings)

        self._send(
            AssistantRole.DATA,
            AssistantRole.ASSISTANT,
            MessageKind.RESPONSE,
            {"listing_ids": [l.id for l in listings], "total": len(listings)},
        )
        return listings

    def _compose_answer(self, question: str) -> str:
        lowered = question.lower()
        recent = self._context.recent_listings
        total = len(recent)

        if any(k in lowered for k in LISTING_KEYWORDS):
            answer = f"Based on the available data, I found {total} listings that may match your criteria."
            if recent:
                first = recent[0]
                price = f"€{first.price:,.0f}" if first.price is not None else "an undisclosed price"
                answer += f" The first one is a {first.property_type.value} in {first.city} for {price}."
            return answer
        if any(k in lowered for k in PRICE_KEYWORDS):
            return (
                "Prices vary with location, type and features of the property. "
                "I can help you find listings within your budget."
            )
        if "lisbon" in lowered or "lisboa" in lowered:
            return (
                "Lisbon has a wide range of listings available. "
                "Searches are served from cache when possible to save source requests."
            )
        if any(k in lowered for k in RECOMMEND_KEYWORDS):
            return (
                "Focus on listings published on several portals: that usually signals "
                "high demand and a stable market price."
            )
        return (
            f'I understood your question about "{question}". With the {total} listings '
            "currently in context I can help you find the best option."
        )

    async def answer_question(self, question: str) -> str:
        """Assistant role: answer a consultant's question from the shared context."""
        self._send(
            AssistantRole.ASSISTANT,
            AssistantRole.DATA,
            MessageKind.QUERY,
            {"question": question},
            context=self._context.model_dump(mode="json"),
        )
        answer = self._compose_answer(question)
        self._send(
            AssistantRole.ASSISTANT,
            AssistantRole.COACHING,
            MessageKind.RESPONSE,
            {"question": question, "answer": answer},
        )
        return answer

    async def analyze_performance(self, consultant_id: str) -> PerformanceReport:
        """Coaching role: feedback derived from the message history."""
        self._send(
            AssistantRole.COACHING,
            AssistantRole.DATA,
            MessageKind.QUERY,
            {"action": "performance_analysis", "consultant_id": consultant_id},
        )

        total = len(self._messages)
        assistant_queries = sum(1 for m in self._messages if m.sender == AssistantRole.ASSISTANT)
        data_searches = sum(1 for m in self._messages if m.sender == AssistantRole.DATA)
        listings_viewed = len(self._context.recent_listings)

        if total < 5:
            analysis = "You are getting started. Keep asking questions to get more out of the system."
        elif total < 15:
            analysis = "Good work! You are using the tools well. Keep exploring different search filters."
        else:
            analysis = "Excellent! Your searches are getting more targeted and efficient."

        # Usage-specific tips first so the top-3 cut keeps them.
        recommendations = []
        if data_searches < 3:
            recommendations.append("Run more searches to explore the full inventory")
        if listings_viewed > 10:
            recommendations.append("You have viewed many listings; narrower filters will save you time")
        recommendations.extend(BASE_RECOMMENDATIONS)

        report = PerformanceReport(
            analysis=analysis,
            recommendations=recommendations[:3],
            metrics={
                "total_interactions": total,
                "assistant_queries": assistant_queries,
                "data_searches": data_searches,
                "listings_viewed": listings_viewed,
            },
        )
        self._send(
            AssistantRole.COACHING,
            AssistantRole.ASSISTANT,
            MessageKind.RESPONSE,
            report.model_dump(),
        )
        return report

    async def integrated_query(
        self, question: str, consultant_id: str, include_coaching: bool = False
    ) -> dict[str, Any]:
        """All three roles on one question."""
        self.update_context(consultant_id=consultant_id)
        answer = await self.answer_question(question)

        relevant = None
        if any(k in question.lower() for k in DETAIL_KEYWORDS):
            relevant = list(self._context.recent_listings)

        coaching = await self.analyze_performance(consultant_id) if include_coaching else None
        logger.info(f"[ASSISTANT] Integrated query for {consultant_id} (coaching={include_coaching})")
        return {
            "answer": answer,
            "relevant_listings": relevant,
            "coaching": coaching,
        }

    def history(self, limit: int = 10) -> list[AssistantMessage]:
        return self._messages[-limit:]

    def reset(self) -> None:
        """Drop message history and shared context."""
        self._messages = []
        self._context = SharedContext()
