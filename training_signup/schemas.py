import re
from datetime import datetime
from typing import List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

Department = Literal["RH", "TI", "Vendas", "Operações"]
Familiarity = Literal["Baixo", "Médio", "Alto"]
TrainingDay = Literal["11/12", "12/12", "13/12"]

DEPARTMENTS = get_args(Department)
FAMILIARITY_LEVELS = get_args(Familiarity)
TRAINING_DAYS = get_args(TrainingDay)


class RegistrationIn(BaseModel):
    full_name: str = Field(min_length=3, max_length=100)
    corporate_email: str = Field(max_length=255)
    department: Department
    familiarity: Familiarity
    needs_accessibility: bool = False
    accessibility_details: Optional[str] = None
    observations: Optional[str] = Field(default=None, max_length=500)
    training_day: TrainingDay

    @field_validator("corporate_email")
    @classmethod
    def email_shape(cls, v: str) -> str:
        # shape only; length is bounded by the field, the address is stored as typed
        if not _EMAIL_RE.match(v):
            raise ValueError("value is not a valid email address")
        return v


class RegistrationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    full_name: str
    corporate_email: str
    department: str
    familiarity: str
    needs_accessibility: bool
    accessibility_details: Optional[str] = None
    observations: Optional[str] = None
    training_day: str
    created_at: datetime


class RegistrationPage(BaseModel):
    total: int
    count: int
    items: List[RegistrationOut]


class AuthCredentials(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)


class SessionOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    email: str
    expires_at: datetime


class SignUpOut(BaseModel):
    ok: bool
    email: str
    confirmation_required: bool
    session: Optional[SessionOut] = None


class EventInfo(BaseModel):
    title: str
    description: str
    dates: str
    start_time: str
    room: str
    departments: List[str]
    familiarity_levels: List[str]
    training_days: List[str]


DepartmentFilter = Literal["all", "RH", "TI", "Vendas", "Operações"]
TrainingDayFilter = Literal["all", "11/12", "12/12", "13/12"]
