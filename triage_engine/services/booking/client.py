"""
Client for the external appointment booking API.
"""

from typing import Any, Dict, Optional
import httpx

from ...config import ExternalAPIConfig
from ...core.exceptions import ExternalAPIError
from ...core.models import ConversationRecord
from ...utils.logging import get_logger

logger = get_logger("booking.client")


class BookingAPIClient:
    """Hand a confirmed booking request over to the appointment API."""

    def __init__(self, config: ExternalAPIConfig):
        self.config = config
        self.timeout = config.booking_api_timeout

    async def _make_request(
        self,
        method: str,
        url: str,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Make HTTP request with error handling."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    json=json,
                    headers=headers or {},
                )
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException:
            raise ExternalAPIError("Request timed out")
        except httpx.HTTPStatusError as e:
            raise ExternalAPIError(f"HTTP error {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            raise ExternalAPIError(f"Request failed: {str(e)}")

    def build_payload(self, record: ConversationRecord) -> Dict[str, Any]:
        """Build the appointment payload from a finished conversation."""
        request = record.booking_request
        return {
            "sessionId": record.session_id,
            "userId": record.user_id,
            "hospitalId": request.hospital_id,
            "departmentId": request.department_id,
            "doctorId": request.doctor_id,
            "preferredTime": request.preferred_time,
            "status": request.status.value,
            "department": record.department,
            "riskLevel": record.risk_level.value,
            "triageReason": record.triage_reason,
            "symptoms": list(record.symptoms),
        }

    async def create_appointment(self, record: ConversationRecord) -> Dict[str, Any]:
        """Create the appointment for a conversation that reached DONE."""
        url = self.config.get_appointments_url()
        if url is None:
            raise ExternalAPIError("Booking API is not configured")

        headers = {"Idempotency-Key": record.session_id}
        if self.config.booking_api_token:
            headers["Authorization"] = f"Bearer {self.config.booking_api_token}"

        result = await self._make_request(
            "POST", url, json=self.build_payload(record), headers=headers
        )
        logger.info(f"booking: appointment created for {record.session_id}")
        return result
