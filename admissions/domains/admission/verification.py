# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""HTTP client for the external face verification service.

The service receives a student's enrollment photos and builds the face
encoding used later for attendance. One call per decision, no retries:
the caller owns retry policy. Every problem (timeout, connection error,
non-2xx status, or a body reporting ``"success": false``) comes back as a
failed VerificationResult instead of an exception.
"""

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

import httpx

from admissions.core.config.settings import VerificationSettings

logger = logging.getLogger(__name__)

# Longest slice of an error body kept in a failure detail
_MAX_DETAIL_LENGTH = 500


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of one verification call.

    Attributes:
        success: True when the service accepted the photos.
        detail: Why the call failed, None on success.
    """

    success: bool
    detail: str | None = None

    @classmethod
    def ok(cls) -> "VerificationResult":
        return cls(success=True)

    @classmethod
    def failure(cls, detail: str) -> "VerificationResult":
        return cls(success=False, detail=detail)


class Verifier(Protocol):
    """Anything that can verify a student's photos."""

    async def verify(
        self,
        student_uid: str,
        photos: Sequence[str],
        course: str,
        timeout: float | None = None,
    ) -> VerificationResult: ...


class VerificationClient:
    """Async client for the face-encoding endpoint.

    Example:
        client = VerificationClient(get_settings().verification)
        result = await client.verify("uid-1", ["https://..."], "compilers")
        if not result.success:
            ...
        await client.aclose()
    """

    def __init__(
        self,
        settings: VerificationSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the verification client.

        Args:
            settings: Verification service settings.
            client: Optional preconfigured HTTP client; the verifier closes
                only clients it created itself.
        """
        self._settings = settings
        self._client = client
        self._owns_client = client is None

    @property
    def endpoint(self) -> str | None:
        """Encoding endpoint URL, None when the service is not configured."""
        return self._settings.endpoint

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._settings.timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def verify(
        self,
        student_uid: str,
        photos: Sequence[str],
        course: str,
        timeout: float | None = None,
    ) -> VerificationResult:
        """Submit a verification job and wait for its outcome.

        Args:
            student_uid: Student whose photos are verified.
            photos: Stable photo URLs from the intake path.
            course: Course the student is enrolling in.
            timeout: Seconds to wait; defaults to the configured timeout.

        Returns:
            Success, or a failure with a detail message.
        """
        endpoint = self.endpoint
        if endpoint is None:
            return VerificationResult.failure("Verification service is not configured")

        effective_timeout = self._settings.timeout if timeout is None else timeout
        payload = {
            "studentUid": student_uid,
            "photos": list(photos),
            "course": course,
        }

        logger.info(
            "Calling verification service: student=%s, course=%s, photos=%d",
            student_uid,
            course,
            len(payload["photos"]),
        )

        try:
            response = await self._get_client().post(
                endpoint,
                json=payload,
                timeout=effective_timeout,
            )
        except httpx.TimeoutException:
            logger.warning("Verification timed out after %.1fs: student=%s", effective_timeout, student_uid)
            return VerificationResult.failure(
                f"Verification timed out after {effective_timeout:g}s"
            )
        except httpx.RequestError as e:
            logger.warning("Verification service unreachable: %s", e)
            return VerificationResult.failure(f"Verification service unreachable: {e}")

        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> VerificationResult:
        """Map an HTTP response to a verification result."""
        if not response.is_success:
            body = response.text[:_MAX_DETAIL_LENGTH]
            logger.warning(
                "Verification service returned %d: %s", response.status_code, body
            )
            return VerificationResult.failure(
                f"Verification service returned {response.status_code}: {body}"
            )

        try:
            data = response.json()
        except ValueError:
            # Plain-text acknowledgements count as success
            return VerificationResult.ok()

        if isinstance(data, dict) and data.get("success") is False:
            detail = data.get("detail") or data.get("error") or "Verification rejected"
            return VerificationResult.failure(str(detail)[:_MAX_DETAIL_LENGTH])

        return VerificationResult.ok()

    async def aclose(self) -> None:
        """Close the HTTP client if this verifier created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
