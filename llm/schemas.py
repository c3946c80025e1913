"""
Pydantic schema of the candidate resume profile.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PersonalInformation(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = ""
    surname: str = ""
    email: str = ""
    country: str = ""
    city: str = ""
    phone: str = ""
    phone_prefix: str = Field("", description="Country calling code, e.g. '+1'")
    phone_national: str = Field("", description="Phone number without the country code")
    github: Optional[str] = None
    linkedin: Optional[str] = None
    website: Optional[str] = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.name, self.surname) if part)

    @property
    def full_phone(self) -> str:
        if self.phone_prefix and self.phone_national:
            return f"{self.phone_prefix} {self.phone_national}"
        return self.phone


class Education(BaseModel):
    model_config = ConfigDict(extra="allow")

    degree: str = ""
    university: str = ""
    field_of_study: str = ""
    graduation_year: str = ""


class Experience(BaseModel):
    model_config = ConfigDict(extra="allow")

    position: str = ""
    company: str = ""
    employment_period: str = ""
    location: str = ""
    key_responsibilities: List[str] = Field(default_factory=list)


class ResumeProfile(BaseModel):
    """Structured resume used for heuristics and as AI context."""

    model_config = ConfigDict(extra="allow")

    personal_information: PersonalInformation = Field(default_factory=PersonalInformation)
    education_details: List[Education] = Field(default_factory=list)
    experience_details: List[Experience] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    languages: List[Dict[str, str]] = Field(default_factory=list)
    legal_authorization: Dict[str, str] = Field(default_factory=dict)
    work_preferences: Dict[str, str] = Field(default_factory=dict)
    salary_expectations: Dict[str, str] = Field(default_factory=dict)
    availability: Dict[str, str] = Field(default_factory=dict)
