from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field


class ChartTypesResponse(BaseModel):
    hasTableTemplate: bool
    hasCustomTemplate: bool


class SavedProfile(BaseModel):
    id: str
    name: str
    category: str = "custom"
    savedMeasurements: Dict[str, Any] = Field(default_factory=dict)
    fitPreference: Optional[str] = None
    stitchingNotes: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class ProfileListResponse(BaseModel):
    success: bool = True
    templates: List[SavedProfile]


class CreateTemplateRequest(BaseModel):
    name: str
    description: Optional[str] = None
    chartData: Dict[str, Any] = Field(default_factory=dict)
    active: bool = True


class TemplateSummary(BaseModel):
    id: str
    name: str
    description: str = ""
    kind: str
    active: bool


class AssignRequest(BaseModel):
    productId: Union[str, int]
    templateId: str
    productTitle: Optional[str] = None


class AssignmentOut(BaseModel):
    id: int
    productId: str
    templateId: str
    productTitle: Optional[str] = None
