"""
Response models for the route generation API
"""
from typing import List, Optional
from pydantic import BaseModel


class LocationPoint(BaseModel):
    """Location point model"""
    lat: float
    lng: float


class DayDetail(BaseModel):
    """One day of a multi-day route"""
    day: int
    distance_km: float
    duration_min: float
    elevation_gain_m: float
    start_point: LocationPoint
    end_point: LocationPoint
    path: List[LocationPoint]
    quality: str


class RouteData(BaseModel):
    """Generated route"""
    route_type: str
    country: Optional[str] = None
    city: Optional[str] = None
    distance_km: float
    duration_min: float
    elevation_gain_m: float
    path: List[LocationPoint]
    start_point: LocationPoint
    end_point: LocationPoint
    is_multi_day: bool = False
    day_details: Optional[List[DayDetail]] = None
    instructions: List[str] = []
    # "ideal", "acceptable" or "closest_achievable"
    quality: str
    attempts_used: int


class RouteResponse(BaseModel):
    """Route response model"""
    status: str = "success"
    message: str = "Route generated successfully"
    data: RouteData


class ErrorDetail(BaseModel):
    kind: str
    best_observed_distance_km: Optional[float] = None


class ErrorResponse(BaseModel):
    status: str = "error"
    message: str
    error: ErrorDetail
