"""
REST client for storing interview results with the hiring platform.
"""
import logging
from typing import Any, Dict, Optional, Sequence

import requests

from ...config import RESULTS_API_TIMEOUT
from ...interview.errors import PersistenceError
from ...interview.models import TranscriptEntry

logger = logging.getLogger("results_client")


class HttpResultsClient:
    """Persistence service that posts results to the platform's application API."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: int = RESULTS_API_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def submit_interview_result(self, application_id: str, score: int,
                                transcript: Sequence[TranscriptEntry]) -> None:
        """
        Store the interview score and transcript for an application.

        Raises:
            PersistenceError: Network failure or an error response
        """
        url = f"{self.base_url}/applications/{application_id}/interview-result"
        body: Dict[str, Any] = {
            "interview_score": int(score),
            "transcript": [entry.to_dict() for entry in transcript],
        }
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            resp = requests.post(url, headers=headers, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise PersistenceError(f"Could not reach results service: {e}") from e

        if resp.status_code >= 400:
            raise PersistenceError(f"Results service error {resp.status_code}: {resp.text}")
        logger.info(f"Stored interview result for application {application_id} (score {score})")
