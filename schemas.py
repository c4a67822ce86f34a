"""
Request schemas for AgriSense (MongoDB collections)

Each collection stores plain documents; these Pydantic models validate what
clients send before it reaches the database:
- user -> RegisterBody / ProfileUpdate
- farm -> FarmIn (crops are embedded: CropIn / CropUpdate)
- yieldprediction -> PredictionRequest
- product -> ProductIn / ProductUpdate
- analytics -> AnalyticsIn / AnalyticsUpdate
"""

from datetime import datetime, timezone
from typing import Any, List, Literal, Optional, get_args

from pydantic import BaseModel, Field, field_validator, model_validator

Role = Literal["farmer", "vendor", "ngo", "admin"]
ProductCategory = Literal["fruits", "vegetables", "grains", "dairy", "livestock", "other"]
ProductStatus = Literal["available", "reserved", "sold"]
AnalyticsType = Literal["yield", "waste", "market", "distribution", "environmental"]

ROLES = get_args(Role)
PRODUCT_CATEGORIES = get_args(ProductCategory)


def _strip_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name is required")
    return v


def _as_utc(v: datetime) -> datetime:
    # naive datetimes are taken as UTC
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


def _normalize_email(v: str) -> str:
    v = (v or "").strip().lower()
    if "@" not in v or v.startswith("@") or v.endswith("@"):
        raise ValueError("Invalid email address")
    return v


class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class Location(BaseModel):
    country: str
    region: str
    coordinates: Optional[Coordinates] = None


# ------------------------- Users -------------------------

class RegisterBody(BaseModel):
    name: str = Field(..., min_length=1)
    email: str
    password: str = Field(..., min_length=6)
    role: Role = "farmer"
    location: Location
    phoneNumber: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_name(v)


class LoginBody(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize(cls, v: str) -> str:
        return (v or "").strip().lower()


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)
    location: Optional[Location] = None
    phoneNumber: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_email(v) if v is not None else v

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return _strip_name(v) if v is not None else v


# ------------------------- Farms & crops -------------------------

class NutrientLevels(BaseModel):
    nitrogen: Optional[float] = None
    phosphorus: Optional[float] = None
    potassium: Optional[float] = None


class SoilCharacteristics(BaseModel):
    type: Optional[str] = None
    pH: Optional[float] = Field(None, ge=0, le=14)
    nutrientLevels: Optional[NutrientLevels] = None


class FarmIn(BaseModel):
    # every field is optional so the same body serves create and update;
    # the create path checks name/location/size itself
    name: Optional[str] = Field(None, min_length=1)
    location: Optional[Location] = None
    size: Optional[float] = Field(None, gt=0)
    soilCharacteristics: Optional[SoilCharacteristics] = None
    waterSource: Optional[List[str]] = None
    equipment: Optional[List[str]] = None


class YieldRecord(BaseModel):
    year: int
    amount: float = Field(..., ge=0)
    unit: str


class CropIn(BaseModel):
    name: str = Field(..., min_length=1)
    variety: Optional[str] = None
    plantingDate: datetime
    expectedHarvestDate: Optional[datetime] = None
    area: float = Field(..., gt=0)
    soilType: Optional[str] = None
    irrigationType: Optional[str] = None
    previousYields: List[YieldRecord] = []


class CropUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    variety: Optional[str] = None
    plantingDate: Optional[datetime] = None
    expectedHarvestDate: Optional[datetime] = None
    area: Optional[float] = Field(None, gt=0)
    soilType: Optional[str] = None
    irrigationType: Optional[str] = None
    previousYields: Optional[List[YieldRecord]] = None


class PredictionRequest(BaseModel):
    cropId: Optional[str] = None
    cropName: Optional[str] = None
    cropVariety: Optional[str] = None
    cropArea: Optional[float] = Field(None, gt=0)

    @model_validator(mode="after")
    def crop_reference(self):
        if not self.cropId and not (self.cropName and self.cropArea):
            raise ValueError("Provide cropId, or cropName and cropArea")
        return self


# ------------------------- Products -------------------------

class Range(BaseModel):
    min: float
    max: float


class StorageRequirements(BaseModel):
    temperature: Optional[Range] = None
    humidity: Optional[Range] = None
    lightSensitive: Optional[bool] = None


class ProductIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: str
    category: ProductCategory
    quantity: float = Field(..., ge=0)
    unit: str
    price: float = Field(..., ge=0)
    currency: str = "USD"
    harvestDate: datetime
    expiryEstimate: datetime
    location: Location
    farmId: Optional[str] = None
    images: List[str] = []
    qualityCertification: List[str] = []
    organicCertification: Optional[bool] = None
    storageRequirements: Optional[StorageRequirements] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[ProductCategory] = None
    quantity: Optional[float] = Field(None, ge=0)
    unit: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
    harvestDate: Optional[datetime] = None
    expiryEstimate: Optional[datetime] = None
    status: Optional[ProductStatus] = None
    location: Optional[Location] = None
    images: Optional[List[str]] = None
    qualityCertification: Optional[List[str]] = None
    organicCertification: Optional[bool] = None
    storageRequirements: Optional[StorageRequirements] = None


# ------------------------- Analytics -------------------------

class Timeframe(BaseModel):
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @model_validator(mode="after")
    def ordered(self):
        if self.end < self.start:
            raise ValueError("timeframe.end must not be before timeframe.start")
        return self


class Scope(BaseModel):
    country: Optional[str] = None
    region: Optional[str] = None
    cropTypes: List[str] = []


class Metric(BaseModel):
    name: str
    value: float
    unit: str
    trend: Optional[float] = None  # % change from previous period


class Visualization(BaseModel):
    type: str  # bar, line, pie ...
    title: str
    data: Any = None


class Source(BaseModel):
    name: str
    url: Optional[str] = None
    date: Optional[datetime] = None


class AccessRights(BaseModel):
    public: bool = False
    restrictedTo: List[str] = []  # user ids or role names


class AnalyticsIn(BaseModel):
    title: str = Field(..., min_length=1)
    description: str
    type: AnalyticsType
    timeframe: Timeframe
    scope: Scope = Scope()
    metrics: List[Metric] = []
    visualizations: List[Visualization] = []
    insights: List[str] = []
    recommendations: List[str] = []
    sources: List[Source] = []
    accessRights: AccessRights = AccessRights()


class AnalyticsUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    type: Optional[AnalyticsType] = None
    timeframe: Optional[Timeframe] = None
    scope: Optional[Scope] = None
    metrics: Optional[List[Metric]] = None
    visualizations: Optional[List[Visualization]] = None
    insights: Optional[List[str]] = None
    recommendations: Optional[List[str]] = None
    sources: Optional[List[Source]] = None
    accessRights: Optional[AccessRights] = None
