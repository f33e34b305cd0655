"""
Chat model construction for the intent parser
"""
import logging
from typing import Optional

from langchain_nvidia_ai_endpoints import ChatNVIDIA

from config.config import Config

logger = logging.getLogger(__name__)


def build_chat_model(config: Config) -> Optional[ChatNVIDIA]:
    """
    NVIDIA-hosted chat model with bounded output and low temperature

    Returns:
        ChatNVIDIA, or None when NVIDIA_API_KEY is not configured
    """
    if not config.NVIDIA_API_KEY:
        logger.warning("NVIDIA_API_KEY not set; AI chat is disabled")
        return None

    return ChatNVIDIA(
        model=config.NVIDIA_MODEL,
        api_key=config.NVIDIA_API_KEY,
        temperature=config.LLM_TEMPERATURE,
        max_tokens=config.LLM_MAX_OUTPUT_TOKENS,
    )
