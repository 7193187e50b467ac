"""Service catalog and café configuration models.

Models from cafe.yaml configuration.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ServiceType(str, Enum):
    """How a service is used up."""

    ONE_OFF = "one-off"  # Consumed on redemption
    DAILY = "daily"  # One timed session
    WEEKLY = "weekly"  # Seven day-units
    MONTHLY = "monthly"  # Thirty day-units
    FIXED_TIME = "fixed-time"  # One timed session of a fixed length

    @property
    def is_time_based(self) -> bool:
        return self is not ServiceType.ONE_OFF


# Day-units granted per purchase; anything absent gets a single unit
PROGRESS_UNITS = {
    ServiceType.WEEKLY: 7,
    ServiceType.MONTHLY: 30,
}


def progress_total_for(service_type: ServiceType) -> int:
    """Number of check-out cycles a purchase of this type allows."""
    return PROGRESS_UNITS.get(ServiceType(service_type), 1)


class ServiceDefinition(BaseModel):
    """A sellable service from the catalog."""

    id: str = Field(..., description="Service ID")
    name: str = Field(..., description="Display name")
    description: str = Field(default="", description="Service description")
    price: float = Field(..., ge=0, description="Price in the café currency")
    type: ServiceType = Field(..., description="Service type")
    duration: Optional[int] = Field(None, gt=0, description="Session length in minutes (fixed-time)")
    validity_period: Optional[str] = Field(
        None, description="ISO 8601 duration after which an unused purchase expires (e.g., P30D)"
    )
    is_public: bool = Field(default=True, description="Listed to guests")
    is_active: bool = Field(default=True, description="Available for sale")

    class Config:
        json_schema_extra = {
            "example": {
                "id": "pc-weekly",
                "name": "PC Weekly Pass",
                "description": "Seven days of workstation access",
                "price": 15000,
                "type": "weekly",
                "validity_period": "P30D",
                "is_public": True,
                "is_active": True,
            }
        }


class CompanySettings(BaseModel):
    """Café identity shown on vouchers and receipts."""

    name: str = Field(..., description="Company name")
    description: str = Field(default="", description="Short description")
    address: Optional[str] = Field(None, description="Street address")
    phone: Optional[str] = Field(None, description="Contact phone")
    email: Optional[str] = Field(None, description="Contact email")
    currency: str = Field(default="NGN", description="ISO 4217 currency code")


class TokenConfig(BaseModel):
    """Prefixes for generated QR tokens and payment references."""

    qr_prefix: str = Field(default="CAFEOS", description="QR token prefix")
    reference_prefix: str = Field(default="CAFEOS", description="Payment reference prefix")


class ClockConfig(BaseModel):
    """Clock behaviour.

    A frozen clock only moves when advanced through the control API.
    """

    frozen: bool = Field(default=False, description="Freeze virtual time at startup")
    start_time_millis: Optional[int] = Field(None, description="Initial virtual time (defaults to now)")


class RedemptionPolicy(BaseModel):
    """Guards applied by the redemption engine."""

    conditional_writes: bool = Field(
        default=True,
        description="Attach an 'expect status == paid' precondition to redemption writes",
    )
    single_active_check_in: bool = Field(
        default=False,
        description="Reject redemption when the purchase already has an active check-in",
    )


class CafeConfig(BaseModel):
    """Complete cafe.yaml configuration."""

    company: CompanySettings
    services: list[ServiceDefinition] = Field(default_factory=list, description="Service catalog")
    tokens: TokenConfig = Field(default_factory=TokenConfig)
    clock: ClockConfig = Field(default_factory=ClockConfig)
    redemption: RedemptionPolicy = Field(default_factory=RedemptionPolicy)
