"""Pydantic schemas for service endpoints (health, index)."""

from __future__ import annotations

from pydantic import BaseModel


class HealthOut(BaseModel):
    status: str
    uptime: float
    timestamp: int


class RouteInfo(BaseModel):
    method: str
    path: str
    description: str


class ApiIndexOut(BaseModel):
    name: str
    version: str
    routes: list[RouteInfo]
