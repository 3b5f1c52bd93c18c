"""
sales_collector/api/schemas.py

Response envelopes for the collection API. Field names are Portuguese because
existing consumers of the dashboard feed already parse them.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: Literal["online"] = "online"
    timestamp: str


class FailureResponse(BaseModel):
    status: Literal["falha"] = "falha"
    erro: str
    tipo: Optional[str] = Field(default=None, description="Error kind, e.g. expired_session")


class CollectionResponse(BaseModel):
    status: Literal["sucesso"] = "sucesso"
    dados: Dict[str, Any]


class LatestResponse(BaseModel):
    status: Literal["sucesso"] = "sucesso"
    dados: Dict[str, Any]


class HistoryResponse(BaseModel):
    status: Literal["sucesso"] = "sucesso"
    dias: int
    coletas: int
    media: float
    dados: List[Dict[str, Any]]
