"""Pydantic schemas for health check responses."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response body for the health check endpoint."""

    status: Literal["ok"] = Field(default="ok", description="Service status")
    environment: str = Field(description="Current app environment (e.g. dev, prod)")
    store_backend: Literal["memory", "relational"] = Field(
        description="Credential store backend in use"
    )
    database: Literal["connected", "disconnected"] | None = Field(
        default=None,
        description="Database connectivity status when the relational store is used",
    )
