"""
LLM-based intent parser for the chat endpoint
Turns a free-text request into a validated ParsedIntent
"""
import asyncio
import logging
from typing import Any, Optional, Sequence, Tuple

from langchain_core.messages import HumanMessage, SystemMessage

from restock_agent.errors import UpstreamGenerationError, ValidationError
from restock_agent.intent.json_repair import DEFAULT_STRATEGIES, Strategy, decode_llm_json
from restock_agent.intent.models import (
    AddProductIntent,
    AddStockIntent,
    ChatIntent,
    ParsedIntent,
    UnrecognizedIntent,
)
from restock_agent.intent.prompts import build_system_prompt
from restock_agent.models import ProductSpec, StockLotSpec, validate_entries

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I didn't understand your request."
GENERATION_FAILED_REPLY = "AI request failed. Please try again in a moment."


def _message_text(response: Any) -> str:
    """Text of a LangChain message (plain or content-block list)"""
    content = getattr(response, "content", response)
    if isinstance(content, list):
        return "".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        )
    return str(content or "")


class IntentParser:
    """
    Parses natural language requests using an LLM

    The model is treated as an unreliable text generator: every decoded
    field is revalidated exactly like direct API input, and no generation
    or decode failure escapes ``parse``.
    """

    def __init__(
        self,
        llm_client=None,
        timeout: float = 20.0,
        strategies: Sequence[Tuple[str, Strategy]] = DEFAULT_STRATEGIES,
    ):
        """
        Initialize parser

        Args:
            llm_client: LangChain chat model (anything with ``ainvoke``);
                None disables generation
            timeout: Seconds to wait for the model before giving up
            strategies: Ordered JSON decode strategies
        """
        self.llm_client = llm_client
        self.timeout = timeout
        self.strategies = strategies

    @property
    def available(self) -> bool:
        return self.llm_client is not None

    async def generate(self, message: str, product_context: bool = False) -> str:
        """
        Call the model with the directive prompt

        Raises:
            UpstreamGenerationError: no model, model error or timeout
        """
        if self.llm_client is None:
            raise UpstreamGenerationError("AI service not configured")

        messages = [
            SystemMessage(content=build_system_prompt(product_context)),
            HumanMessage(content=message),
        ]
        try:
            response = await asyncio.wait_for(self.llm_client.ainvoke(messages), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamGenerationError(f"generation timed out after {self.timeout:g}s") from e
        except Exception as e:
            # Network, auth and quota errors all look alike to the caller
            raise UpstreamGenerationError(f"generation failed: {e}") from e

        return _message_text(response)

    async def parse(self, message: str, product_context: bool = False) -> ParsedIntent:
        """
        Parse a chat message into an intent

        Args:
            message: User's free-text request
            product_context: True when a specific product is open, which
                allows add_stock

        Returns:
            ParsedIntent; UnrecognizedIntent on any upstream failure
        """
        try:
            raw = await self.generate(message, product_context)
        except UpstreamGenerationError as e:
            logger.warning("AI generation failed: %s", e.message)
            return UnrecognizedIntent(message=GENERATION_FAILED_REPLY)

        return self.interpret(raw)

    def interpret(self, raw_text: Optional[str]) -> ParsedIntent:
        """Decode and validate raw model text"""
        result = decode_llm_json(raw_text, self.strategies)
        if not result.ok:
            logger.warning("Could not decode model output (%s): %r", result.error, (raw_text or "")[:200])
            return UnrecognizedIntent(message=FALLBACK_REPLY)

        data = result.value
        if not isinstance(data, dict):
            logger.warning("Model output is not an object: %r", data)
            return UnrecognizedIntent(message=FALLBACK_REPLY)

        intent = data.get("intent")
        if isinstance(intent, str):
            intent = intent.strip().lower()

        if intent == "chat":
            reply = data.get("reply")
            if not isinstance(reply, str) or not reply.strip():
                return UnrecognizedIntent(message=FALLBACK_REPLY)
            return ChatIntent(reply=reply)

        if intent == "add_stock":
            try:
                entries = validate_entries(data.get("data"), StockLotSpec, what="data")
            except ValidationError as e:
                return self._invalid_payload(intent, e)
            return AddStockIntent(entries=entries)

        if intent == "add_product":
            try:
                entries = validate_entries(data.get("data"), ProductSpec, what="data")
            except ValidationError as e:
                return self._invalid_payload(intent, e)
            return AddProductIntent(entries=entries)

        logger.warning("Unknown intent from model: %r", intent)
        return UnrecognizedIntent(message=FALLBACK_REPLY)

    @staticmethod
    def _invalid_payload(intent: str, error: ValidationError) -> UnrecognizedIntent:
        logger.warning("Rejected %s payload: %s", intent, error.message)
        return UnrecognizedIntent(
            message=f"I couldn't use that request ({error.message}). Please rephrase and try again."
        )
