"""
Résolution de la sélection du dashboard en filtre adAnalytics

Précédence: Ad > Campaign > CampaignGroup > Account.
Seule la liste non vide la plus spécifique est utilisée.
"""
import enum
from dataclasses import dataclass
from typing import List, Tuple


class InvalidSelectionError(ValueError):
    """Sélection vide: aucun compte sélectionné"""
    pass


class PivotLevel(str, enum.Enum):
    ACCOUNT = "ACCOUNT"
    CAMPAIGN_GROUP = "CAMPAIGN_GROUP"
    CAMPAIGN = "CAMPAIGN"
    AD = "AD"

    @property
    def facet(self) -> str:
        """Nom du paramètre de filtrage adAnalytics"""
        return _FACETS[self]

    @property
    def urn_prefix(self) -> str:
        return _URN_PREFIXES[self]

    @property
    def breakdown_pivot(self) -> str:
        """
        Pivot LinkedIn des rows retournées

        Compte et groupe sont ventilés par campagne (top campagnes),
        un filtre ads est ventilé par créa.
        """
        return _BREAKDOWN_PIVOTS[self]


_FACETS = {
    PivotLevel.ACCOUNT: "accounts",
    PivotLevel.CAMPAIGN_GROUP: "campaignGroups",
    PivotLevel.CAMPAIGN: "campaigns",
    PivotLevel.AD: "creatives",
}

_URN_PREFIXES = {
    PivotLevel.ACCOUNT: "urn:li:sponsoredAccount",
    PivotLevel.CAMPAIGN_GROUP: "urn:li:sponsoredCampaignGroup",
    PivotLevel.CAMPAIGN: "urn:li:sponsoredCampaign",
    PivotLevel.AD: "urn:li:sponsoredCreative",
}

_BREAKDOWN_PIVOTS = {
    PivotLevel.ACCOUNT: "CAMPAIGN",
    PivotLevel.CAMPAIGN_GROUP: "CAMPAIGN",
    PivotLevel.CAMPAIGN: "CAMPAIGN",
    PivotLevel.AD: "CREATIVE",
}


@dataclass(frozen=True)
class ResolvedSelection:
    level: PivotLevel
    ids: Tuple[str, ...]

    @property
    def urns(self) -> List[str]:
        return [f"{self.level.urn_prefix}:{entity_id}" for entity_id in self.ids]

    def batches(self) -> List["ResolvedSelection"]:
        """
        Découpage en requêtes indépendantes

        Un compte = une requête (fetch parallèle, un accumulateur partiel par compte).
        Les autres niveaux partent en une seule requête filtrée.
        """
        if self.level is PivotLevel.ACCOUNT:
            return [ResolvedSelection(self.level, (entity_id,)) for entity_id in self.ids]
        return [self]


def clean_ids(ids) -> Tuple[str, ...]:
    """Ids non vides, dédoublonnés, ordre conservé"""
    seen = []
    for entity_id in ids or ():
        entity_id = str(entity_id).strip()
        if entity_id and entity_id not in seen:
            seen.append(entity_id)
    return tuple(seen)


def resolve_selection(
    account_ids,
    campaign_group_ids=None,
    campaign_ids=None,
    ad_ids=None,
) -> ResolvedSelection:
    """
    Choisit le niveau de filtrage le plus spécifique non vide

    Returns:
        ResolvedSelection(level, ids)

    Raises:
        InvalidSelectionError: si la sélection est entièrement vide
    """
    for level, ids in (
        (PivotLevel.AD, ad_ids),
        (PivotLevel.CAMPAIGN, campaign_ids),
        (PivotLevel.CAMPAIGN_GROUP, campaign_group_ids),
    ):
        cleaned = clean_ids(ids)
        if cleaned:
            return ResolvedSelection(level, cleaned)

    accounts = clean_ids(account_ids)
    if not accounts:
        raise InvalidSelectionError("At least one ad account must be selected")

    return ResolvedSelection(PivotLevel.ACCOUNT, accounts)
