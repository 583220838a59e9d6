from typing import Optional

from pydantic import BaseModel, ConfigDict


class Service(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    name: Optional[str] = None
    duration: Optional[int] = None
    price: Optional[float] = None
    category: Optional[str] = None


class Stylist(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    full_name: Optional[str] = None
    role: Optional[str] = None
