"""
Router analytics: métriques agrégées période courante vs précédente + rapport LLM
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies.auth import get_current_member_id, get_linkedin_token
from ..schemas import AnalyticsRequest, ReportRequest
from ..services.analytics import build_analytics
from ..services.entity_resolver import InvalidSelectionError, clean_ids
from ..services.linkedin_client import LinkedInAPIError, LinkedInClient, get_linkedin_client
from ..services.report_generator import ReportGenerator, build_report_prompt, get_report_generator
from .accounts import upstream_http_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/analytics")
async def get_analytics(
    body: AnalyticsRequest,
    access_token: str = Depends(get_linkedin_token),
    client: LinkedInClient = Depends(get_linkedin_client),
) -> Dict[str, Any]:
    """
    Métriques agrégées de la sélection sur deux périodes

    🔒 Protected endpoint - requires valid JWT
    ⚠️ Une page LinkedIn en échec ne fait PAS échouer la requête:
       la réponse porte les données partielles et "partial": true
    🔑 Token LinkedIn expiré → 401 (reconnexion)

    Returns:
        {
            "current": {...MetricSet},
            "previous": {...MetricSet},
            "topPerformers": [...],
            "budgetPacing": {...},
            "pivot": {"level": "ACCOUNT", "breakdown": "CAMPAIGN"},
            "partial": false
        }
    """
    # accountIds requis même si une sélection plus fine est fournie (dashboard désactive sinon)
    if not clean_ids(body.accountIds):
        raise HTTPException(status_code=400, detail="accountIds must contain at least one ad account")

    try:
        return await build_analytics(
            client,
            access_token,
            body,
            body.currentRange,
            body.previousRange,
            budget=body.budget,
        )
    except InvalidSelectionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LinkedInAPIError as e:
        # Seul le 401 remonte du pipeline (les autres échecs donnent "partial")
        raise upstream_http_error(e)


@router.post("/report")
async def generate_report(
    body: ReportRequest,
    member_id: str = Depends(get_current_member_id),
    generator: ReportGenerator = Depends(get_report_generator),
) -> Dict[str, Any]:
    """
    Rapport narratif + recommandations d'optimisation sur les métriques fournies

    Returns:
        {"report": str (Markdown), "model": str}
    """
    prompt = build_report_prompt(
        current=body.current,
        previous=body.previous,
        top_performers=body.topPerformers,
        budget_pacing=body.budgetPacing,
        current_range=body.currentRange,
        previous_range=body.previousRange,
        selected_entities=body.selectedEntities,
    )

    if not generator.api_key:
        raise HTTPException(status_code=503, detail="Report generation is not configured")

    logger.info(f"Report requested by member {member_id}")
    result = await generator.generate(prompt)
    if not result.ok:
        raise HTTPException(status_code=502, detail=result.error)

    return {"report": result.report, "model": result.model}
