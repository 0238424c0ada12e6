from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field

# Routes that do not require the admin token: all reads plus login and logout
PUBLIC_METHODS = {"GET"}
PUBLIC_ENDPOINTS = {
    ("POST", "/api/v1/auth/login"),
    ("POST", "/api/v1/auth/logout"),
}
PROTECTED_READS = {
    ("GET", "/api/v1/auth/session"),
    ("GET", "/api/v1/files"),
}


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="AlgoShelf API",
            version="0.1.0",
            summary="Algorithm write-ups, notes, files and project showcases",
            routes=app.routes,
        )

        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "description": "Admin bearer token from /auth/login (preferred)",
            },
            "AuthTokenCookie": {
                "type": "apiKey",
                "in": "cookie",
                "name": "auth_token",
                "description": "Admin token stored in cookie",
            },
        }

        # Apply security per operation: mutations need the admin token, reads are public
        for path, path_item in openapi_schema["paths"].items():
            for method, operation in path_item.items():
                key = (method.upper(), path)
                public = (key[0] in PUBLIC_METHODS and key not in PROTECTED_READS) or key in PUBLIC_ENDPOINTS
                operation["security"] = [] if public else [{"BearerAuth": []}, {"AuthTokenCookie": []}]

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "Invalid credentials", "type": "invalid_credential"},
                {"message": "Too many failed login attempts, try again in 840 seconds", "type": "locked_out"},
                {"message": "Token has expired", "type": "token_expired"},
                {"message": "File not found: 5d0c...", "type": "not_found"},
            ]
        }
    }
