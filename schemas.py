"""
Data Schemas for Coffee Plant Doctor

Each stored entity has an *In model (what callers supply) and a full
model that adds the fields the storage layer assigns (id, createdAt).
Field names are camelCase because they are returned to the client as-is.
"""
from datetime import datetime
from typing import Optional, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

DiagnosisMethod = Literal["image", "voice", "text"]
Severity = Literal["Low Risk", "Medium Risk", "High Risk"]
Priority = Literal["high", "medium", "low"]
TipCategory = Literal["watering", "fertilizing", "pruning", "pest_control"]
ContactType = Literal["extension", "cooperative", "veterinary"]


# Users
class UserIn(BaseModel):
    username: str = Field(..., min_length=1, max_length=80)
    password: str = Field(..., min_length=1, description="bcrypt password hash (server-side)")


class User(UserIn):
    id: str


class PublicUser(BaseModel):
    id: str
    username: str


# Diagnoses
class DiagnosisResult(BaseModel):
    """Verdict produced by the classifier, before it is stored."""
    diseaseName: str
    description: str
    severity: Severity
    treatment: str
    prevention: str
    confidence: Optional[str] = Field(None, description="Score between 0.0 and 1.0, as a string")
    analysisNotes: Optional[str] = None


class DiagnosisIn(DiagnosisResult):
    userId: Optional[str] = None
    symptoms: str
    diagnosisMethod: DiagnosisMethod
    imageUrl: Optional[str] = None
    voiceRecordingUrl: Optional[str] = None


class Diagnosis(DiagnosisIn):
    id: str
    createdAt: datetime


# Farming tips
class FarmingTipIn(BaseModel):
    season: str
    title: str
    description: str
    priority: Priority
    category: TipCategory


class FarmingTip(FarmingTipIn):
    id: str
    createdAt: datetime


# Emergency contacts
class EmergencyContactIn(BaseModel):
    name: str
    organization: str
    phoneNumber: str
    contactType: ContactType
    isActive: str = Field("true", description="\"true\" when the contact should be listed")


class EmergencyContact(EmergencyContactIn):
    id: str


# ----------------------
# Request bodies
# ----------------------
class CreateDiagnosisBody(BaseModel):
    symptoms: str = Field("", max_length=2000)
    diagnosisMethod: DiagnosisMethod = "text"
    imageUrl: Optional[str] = None
    voiceRecordingUrl: Optional[str] = None
    userId: Optional[str] = None

    @model_validator(mode="after")
    def check_method_matches_media(self):
        if self.imageUrl and self.diagnosisMethod != "image":
            raise ValueError("imageUrl is only allowed when diagnosisMethod is 'image'")
        if self.voiceRecordingUrl and self.diagnosisMethod != "voice":
            raise ValueError("voiceRecordingUrl is only allowed when diagnosisMethod is 'voice'")
        if not self.symptoms.strip() and not self.imageUrl:
            raise ValueError("symptoms must not be empty unless an image is provided")
        return self


class RegisterBody(BaseModel):
    username: str = Field(..., min_length=1, max_length=80)
    password: str = Field(..., min_length=6, max_length=72)

    @field_validator("password")
    @classmethod
    def fits_bcrypt(cls, value):
        # bcrypt only accepts 72 bytes of input
        if len(value.encode("utf-8")) > 72:
            raise ValueError("password must be at most 72 bytes")
        return value


class PlantImageBody(BaseModel):
    imageURL: str = Field(..., min_length=1)
