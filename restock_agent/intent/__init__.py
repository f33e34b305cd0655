"""
AI intent parsing and dispatch

Free-text chat message -> model output -> validated ParsedIntent ->
catalog/stock mutation or plain reply
"""

from .dispatcher import DispatchResult, IntentDispatcher
from .json_repair import DEFAULT_STRATEGIES, DecodeResult, decode_llm_json
from .llm_parser import IntentParser
from .models import (
    AddProductIntent,
    AddStockIntent,
    ChatIntent,
    ParsedIntent,
    UnrecognizedIntent,
)

__all__ = [
    "IntentParser",
    "IntentDispatcher",
    "DispatchResult",
    "DecodeResult",
    "DEFAULT_STRATEGIES",
    "decode_llm_json",
    "ParsedIntent",
    "AddStockIntent",
    "AddProductIntent",
    "ChatIntent",
    "UnrecognizedIntent",
]
