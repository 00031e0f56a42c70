"""Type-specific listing payloads.

Each listing type carries exactly one of these, tagged by ``kind``. The form
layer submits them under per-type keys (``businessDetails``,
``franchiseDetails``...); the schema registry picks the model from the
listing type.
"""

from datetime import datetime, UTC
from typing import Annotated, Literal, Union

from pydantic import AfterValidator, Field, StringConstraints, ValidationInfo, field_validator

from .base import CamelModel


MIN_YEAR = 1900


def _not_in_future(year: int) -> int:
    if year > datetime.now(UTC).year:
        raise ValueError("Year cannot be in the future")
    return year


Year = Annotated[int, Field(ge=MIN_YEAR), AfterValidator(_not_in_future)]
Percentage = Annotated[float, Field(ge=0, le=100)]
Count = Annotated[int, Field(ge=0)]
RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Money(CamelModel):
    """Required, non-negative monetary amount."""

    value: float = Field(..., ge=0)
    currency: str = "INR"


class OptionalMoney(CamelModel):
    """Monetary amount a form may leave blank."""

    value: float | None = Field(None, ge=0)
    currency: str = "INR"


def _check_upper_bound(upper: OptionalMoney | None, lower: Money | None, message: str) -> OptionalMoney | None:
    if upper is None or upper.value is None or lower is None:
        return upper
    if upper.value < lower.value:
        raise ValueError(message)
    return upper


# --- business -------------------------------------------------------------


class EmployeeCounts(CamelModel):
    count: Count = 0
    full_time: Count = 0
    part_time: Count = 0


class BusinessHours(CamelModel):
    open: str = ""
    close: str = ""
    is_closed: bool = False


class BusinessOperations(CamelModel):
    employees: EmployeeCounts = Field(default_factory=EmployeeCounts)
    business_hours: dict[str, BusinessHours] = Field(default_factory=dict)


class ProfitMargin(CamelModel):
    percentage: Percentage | None = None


class BusinessFinancials(CamelModel):
    annual_revenue: OptionalMoney | None = None
    profit_margin: ProfitMargin | None = None


class SaleTerms(CamelModel):
    asking_price: Money
    reason_for_selling: str | None = None
    is_negotiable: bool = True


class BusinessDetails(CamelModel):
    """Business-for-sale payload: registration, operations, financials, sale terms."""

    kind: Literal["business"] = "business"
    business_type: RequiredText
    established_year: Year
    registration_number: str | None = None
    gst_number: str | None = None
    pan_number: str | None = None
    operations: BusinessOperations = Field(default_factory=BusinessOperations)
    financials: BusinessFinancials = Field(default_factory=BusinessFinancials)
    sale: SaleTerms


# --- franchise ------------------------------------------------------------


class InvestmentRange(CamelModel):
    minimum: Money = Field(..., alias="min")
    maximum: OptionalMoney | None = Field(None, alias="max")

    @field_validator("maximum")
    @classmethod
    def _max_not_below_min(cls, value: OptionalMoney | None, info: ValidationInfo) -> OptionalMoney | None:
        return _check_upper_bound(
            value, info.data.get("minimum"), "Maximum investment must be greater than minimum"
        )


class RoyaltyFee(CamelModel):
    percentage: Percentage | None = None


class FranchiseInvestment(CamelModel):
    investment_range: InvestmentRange
    franchise_fee: OptionalMoney | None = None
    royalty_fee: RoyaltyFee | None = None


class ContractDuration(CamelModel):
    years: Count | None = None


class TerritoryRights(CamelModel):
    is_exclusive: bool = False


class FranchiseTerms(CamelModel):
    contract_duration: ContractDuration = Field(default_factory=ContractDuration)
    territory_rights: TerritoryRights = Field(default_factory=TerritoryRights)


class InitialSupport(CamelModel):
    has_training_provided: bool = True
    training_duration: str | None = None


class OngoingSupport(CamelModel):
    is_available: bool = True


class FranchiseSupport(CamelModel):
    initial_support: InitialSupport = Field(default_factory=InitialSupport)
    ongoing_support: OngoingSupport = Field(default_factory=OngoingSupport)


class FranchiseDetails(CamelModel):
    """Franchise opportunity payload: investment, terms, support."""

    kind: Literal["franchise"] = "franchise"
    franchise_type: RequiredText
    total_outlets: Count
    established_year: Year | None = None
    investment: FranchiseInvestment
    terms: FranchiseTerms = Field(default_factory=FranchiseTerms)
    support: FranchiseSupport = Field(default_factory=FranchiseSupport)


# --- startup --------------------------------------------------------------


class Founder(CamelModel):
    name: RequiredText
    role: RequiredText
    equity_percentage: Percentage | None = None


class StartupTeam(CamelModel):
    founders: list[Founder] = Field(..., min_length=1)
    team_size: Count | None = None


class FundingRound(CamelModel):
    target_amount: OptionalMoney | None = None
    raised_amount: OptionalMoney | None = None
    equity_offered: Percentage | None = None


class StartupFunding(CamelModel):
    current: FundingRound = Field(default_factory=FundingRound)
    total_raised: OptionalMoney | None = None


class StartupDetails(CamelModel):
    """Startup payload: stage, funding round, founding team."""

    kind: Literal["startup"] = "startup"
    stage: RequiredText
    founded_year: Year | None = None
    funding: StartupFunding = Field(default_factory=StartupFunding)
    team: StartupTeam


# --- investor -------------------------------------------------------------


class InvestmentCapacity(CamelModel):
    min_investment: Money
    max_investment: OptionalMoney | None = None

    @field_validator("max_investment")
    @classmethod
    def _max_not_below_min(cls, value: OptionalMoney | None, info: ValidationInfo) -> OptionalMoney | None:
        return _check_upper_bound(
            value, info.data.get("min_investment"), "Maximum investment must be greater than minimum"
        )


class InvestorInvestment(CamelModel):
    capacity: InvestmentCapacity
    preferred_stages: list[str] = Field(default_factory=list)


class IndustryFocus(CamelModel):
    primary: list[str] = Field(..., min_length=1)
    secondary: list[str] = Field(default_factory=list)


class InvestorFocus(CamelModel):
    industries: IndustryFocus
    locations: list[str] = Field(default_factory=list)


class InvestorDetails(CamelModel):
    """Investor profile payload: capacity and focus. Investors carry no price."""

    kind: Literal["investor"] = "investor"
    investor_type: RequiredText
    investment: InvestorInvestment
    focus: InvestorFocus


# --- digital asset --------------------------------------------------------


class TrafficOverview(CamelModel):
    monthly_visitors: Count | None = None
    monthly_page_views: Count | None = None


class Traffic(CamelModel):
    overview: TrafficOverview = Field(default_factory=TrafficOverview)


class AssetPrice(CamelModel):
    asking: Money


class AssetSale(CamelModel):
    price: AssetPrice
    is_negotiable: bool = True


class DigitalAssetDetails(CamelModel):
    """Website/app/domain payload: traffic and sale price."""

    kind: Literal["digital_asset"] = "digital_asset"
    asset_type: RequiredText
    url: str | None = None
    established_year: Year | None = None
    monetization: list[str] = Field(default_factory=list)
    monthly_revenue: OptionalMoney | None = None
    traffic: Traffic = Field(default_factory=Traffic)
    sale: AssetSale


TypeDetails = Annotated[
    Union[BusinessDetails, FranchiseDetails, StartupDetails, InvestorDetails, DigitalAssetDetails],
    Field(discriminator="kind"),
]
