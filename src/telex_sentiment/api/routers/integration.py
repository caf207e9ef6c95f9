"""Integration descriptor router."""
from fastapi import APIRouter

from telex_sentiment.api.schemas.integration import IntegrationDescriptor
from telex_sentiment.api.services.integration_service import get_descriptor

router = APIRouter()


@router.get(
    "/integration.json",
    response_model=IntegrationDescriptor,
    summary="Telex integration descriptor",
)
async def integration_json():
    """Static app metadata, settings, permissions and default target_url."""
    return get_descriptor()


router.add_api_route(
    "/integration-json",
    integration_json,
    methods=["GET"],
    response_model=IntegrationDescriptor,
    include_in_schema=False,
)
