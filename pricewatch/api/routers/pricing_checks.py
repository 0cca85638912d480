"""
pricewatch/api/routers/pricing_checks.py

On-demand pricing check endpoints.
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from db.session import get_db
from pricewatch.schemas.pricing_checks import (
    AlertResponse,
    CompetitorCheckResponse,
    DetectedDiffResponse,
    PricingContextResponse,
    RegionalComparisonResponse,
    RegionalDifferenceResponse,
)
from pricewatch.services.pricing_check_service import (
    PricingCheckService,
    PricingContextOutcome,
    get_pricing_check_service,
)
from pricewatch.storage import SQLAlchemyPricingStore

router = APIRouter(prefix="/competitors", tags=["pricing-checks"])


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _to_pricing_response(outcome: PricingContextOutcome) -> PricingContextResponse:
    diff = outcome.diff
    return PricingContextResponse(
        competitor_id=outcome.competitor_id,
        region=outcome.region,
        status=outcome.status,
        source=outcome.source,
        error=outcome.error,
        message=outcome.message,
        snapshot_id=outcome.snapshot_id,
        paused=outcome.paused,
        has_meaningful_changes=diff.has_meaningful_changes if diff else False,
        overall_severity=diff.overall_severity if diff else 0.0,
        summary=diff.summary if diff else None,
        diffs=[DetectedDiffResponse(**item.to_dict()) for item in (diff.diffs if diff else [])],
        alerts=[AlertResponse(**asdict(alert)) for alert in outcome.alerts],
    )


@router.post("/{competitor_id}/check-now", response_model=CompetitorCheckResponse)
async def check_now(
    competitor_id: str,
    db: Session = Depends(get_db),
    service: PricingCheckService = Depends(get_pricing_check_service),
) -> CompetitorCheckResponse:
    """
    Run the page text check for one competitor immediately.
    """

    try:
        outcome = await service.check_competitor_page(
            store=SQLAlchemyPricingStore(session=db),
            competitor_id=competitor_id,
        )
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return CompetitorCheckResponse(**asdict(outcome))


@router.post("/{competitor_id}/pricing-check", response_model=PricingContextResponse)
async def pricing_check(
    competitor_id: str,
    region: str = Query(default="us", description="Region key: us, in, eu or global"),
    db: Session = Depends(get_db),
    service: PricingCheckService = Depends(get_pricing_check_service),
) -> PricingContextResponse:
    try:
        outcome = await service.check_pricing_context(
            store=SQLAlchemyPricingStore(session=db),
            competitor_id=competitor_id,
            region=region,
        )
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return _to_pricing_response(outcome)


@router.post("/{competitor_id}/compare-regions", response_model=RegionalComparisonResponse)
async def compare_regions(
    competitor_id: str,
    db: Session = Depends(get_db),
    service: PricingCheckService = Depends(get_pricing_check_service),
) -> RegionalComparisonResponse:
    try:
        outcome = await service.compare_regions(
            store=SQLAlchemyPricingStore(session=db),
            competitor_id=competitor_id,
        )
    except ValueError as exc:
        raise _bad_request(exc) from exc

    return RegionalComparisonResponse(
        competitor_id=outcome.competitor_id,
        has_differences=outcome.comparison.has_differences,
        summary=outcome.comparison.summary,
        differences=[
            RegionalDifferenceResponse(**asdict(difference))
            for difference in outcome.comparison.differences
        ],
        alert_ids=outcome.alert_ids,
    )
