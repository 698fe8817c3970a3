"""
Schémas Pydantic des requêtes de l'API (validation en entrée)
"""
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class DateRange(BaseModel):
    """Plage de dates calendaires inclusive (pas d'heure)"""
    start: date
    end: date

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.end < self.start:
            raise ValueError(f"end ({self.end}) is before start ({self.start})")
        return self

    def __str__(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


class EntitySelection(BaseModel):
    """Sélection du dashboard: comptes, puis groupes / campagnes / ads optionnels"""
    accountIds: List[str] = Field(default_factory=list)
    campaignGroupIds: List[str] = Field(default_factory=list)
    campaignIds: List[str] = Field(default_factory=list)
    adIds: List[str] = Field(default_factory=list)


class AnalyticsRequest(EntitySelection):
    currentRange: DateRange
    previousRange: DateRange
    budget: Optional[float] = Field(default=None, ge=0)


class AccountsRequest(BaseModel):
    accountIds: List[str] = Field(default_factory=list)


class CampaignsRequest(AccountsRequest):
    campaignGroupIds: List[str] = Field(default_factory=list)


class AdsRequest(AccountsRequest):
    campaignIds: List[str] = Field(default_factory=list)


class ReportRequest(BaseModel):
    """Réponse de /api/analytics renvoyée telle quelle par le dashboard + contexte"""
    current: Dict[str, float]
    previous: Dict[str, float]
    topPerformers: List[Dict[str, Any]] = Field(default_factory=list)
    budgetPacing: Optional[Dict[str, float]] = None
    currentRange: DateRange
    previousRange: DateRange
    selectedEntities: List[str] = Field(default_factory=list)


class DevLoginRequest(BaseModel):
    access_token: str = Field(..., min_length=1)
    member_id: str = "dev_member"
    name: str = "Dev Member"
