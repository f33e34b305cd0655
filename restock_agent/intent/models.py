"""
Parsed intents: the structured action inferred from a chat message
"""
from typing import List, Literal, Union

from pydantic import BaseModel, Field

from restock_agent.models import ProductSpec, StockLotSpec


class AddStockIntent(BaseModel):
    """Add one or more lots to the product in context"""
    kind: Literal["add_stock"] = "add_stock"
    entries: List[StockLotSpec] = Field(..., min_length=1)

    @property
    def payload(self) -> List[StockLotSpec]:
        return self.entries


class AddProductIntent(BaseModel):
    """Add one or more products to the user's catalog"""
    kind: Literal["add_product"] = "add_product"
    entries: List[ProductSpec] = Field(..., min_length=1)

    @property
    def payload(self) -> List[ProductSpec]:
        return self.entries


class ChatIntent(BaseModel):
    """Plain reply, no mutation"""
    kind: Literal["chat"] = "chat"
    reply: str

    @property
    def payload(self) -> str:
        return self.reply


class UnrecognizedIntent(BaseModel):
    """Model output could not be decoded or validated"""
    kind: Literal["unrecognized"] = "unrecognized"
    message: str

    @property
    def payload(self) -> str:
        return self.message


ParsedIntent = Union[AddStockIntent, AddProductIntent, ChatIntent, UnrecognizedIntent]
