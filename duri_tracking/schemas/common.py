"""Shared schema base classes and generic responses."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys for the dashboard client.

    Python code constructs and reads fields by their snake_case names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorDetail(BaseModel):
    """Body placed in ``HTTPException.detail`` for handled failures."""

    error: str = Field(..., description="Error code", examples=["SOURCE_NOT_CONFIGURED"])
    message: str = Field(..., description="Human-readable message suitable for display")
    detail: str = Field(default="", description="Underlying cause, if any")


class HealthCheckResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Service status
        version: Application version
        service: Service name
        source_configured: Whether the task source token is present
    """

    status: str = Field(
        default="healthy",
        description="Service health status",
        examples=["healthy", "degraded"],
    )
    version: str = Field(..., description="Application version", examples=["0.1.0"])
    service: str = Field(
        ..., description="Service name", examples=["Duri Tracking Service"]
    )
    source_configured: bool = Field(
        default=False, description="Whether the task source token is configured"
    )


class RootResponse(BaseModel):
    """Root endpoint response payload."""

    message: str = Field(..., description="Service status message")
    version: str = Field(..., description="Running application version")
    docs: str = Field(..., description="Path to the interactive API docs")
    health: str = Field(..., description="Path to the health check endpoint")
