from typing import Optional
from pydantic import BaseModel


class RouteRequest(BaseModel):
    country: str
    city: Optional[str] = None
    route_type: str = "walking"  # "walking" or "cycling"
