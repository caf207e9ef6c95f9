"""Integration descriptor schemas served at /integration.json."""
from pydantic import BaseModel

from telex_sentiment.api.schemas.moderation import Setting


class DescriptorDates(BaseModel):
    created_at: str
    updated_at: str


class DescriptorDescriptions(BaseModel):
    app_name: str
    app_description: str
    app_logo: str
    app_url: str
    background_color: str


class OutputFlag(BaseModel):
    label: str
    value: bool


class Permission(BaseModel):
    always_online: bool
    display_name: str


class IntegrationData(BaseModel):
    """Body of the Telex integration descriptor."""
    date: DescriptorDates
    descriptions: DescriptorDescriptions
    integration_category: str
    integration_type: str
    is_active: bool
    output: list[OutputFlag] = []
    key_features: list[str] = []
    permissions: dict[str, Permission] = {}
    settings: list[Setting] = []
    target_url: str


class IntegrationDescriptor(BaseModel):
    data: IntegrationData
