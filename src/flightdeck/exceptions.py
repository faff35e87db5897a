# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

from typing import Optional


class FlightdeckError(Exception):
    """Base exception for flightdeck."""

    pass


class TargetValidationError(FlightdeckError):
    """Raised when the configured target cannot be used (missing API URL, team, ...)."""

    pass


class JobRefError(FlightdeckError):
    """Raised when a PIPELINE/JOB flag cannot be parsed."""

    pass


class ApiError(FlightdeckError):
    """Base exception for failed calls to the orchestration service."""

    pass


class UnexpectedResponseError(ApiError):
    """Exception raised when the service answers with a non-2xx status."""

    def __init__(self, status_code: int, reason: str = "", body: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"Unexpected Response\nStatus: {status_code} {reason}".rstrip() + f"\nBody:\n{body}")


class InvalidResponseError(ApiError):
    """Exception raised when a successful response carries a body that cannot be decoded."""

    pass


class ServiceUnreachableError(ApiError):
    """Exception raised for connection-level failures (refused, DNS, timeouts)."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        self.url = url
        super().__init__(message)


class StreamFailure(FlightdeckError):
    """Exception raised when the build event stream breaks mid-flight."""

    pass


class BuildNotFoundError(FlightdeckError):
    """Raised when a job has no build to watch."""

    pass
