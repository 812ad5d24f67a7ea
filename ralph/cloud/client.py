"""
Cloud Agent Client - Cursor Cloud Agents API wrapper

Synchronous httpx client for the handful of endpoints the watcher needs.
Authentication is HTTP basic with the API key as username and an empty
password. Every call carries an explicit timeout so a hung request cannot
block the watcher forever.
"""

import logging
import time
import uuid
from typing import Any

import httpx

from ralph.cloud.models import AgentInfo, AgentLaunch, Transcript
from ralph.config import DEFAULT_API_BASE_URL
from ralph.exceptions import (
    CloudAgentConnectionError,
    CloudAgentRateLimitError,
    CloudAgentResponseError,
)
from ralph.logging import ApiLogEntry, api_logger, now_iso

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0  # seconds
MONITOR_URL = "https://cursor.com/agents?id={agent_id}"


def monitor_url(agent_id: str) -> str:
    """Browser URL for following an agent."""
    return MONITOR_URL.format(agent_id=agent_id)


class CloudAgentClient:
    """
    Client for the Cursor Cloud Agents API.

    Provides:
    - Status and conversation reads (get_agent, get_conversation)
    - Control calls (stop_agent, send_followup)
    - Agent creation for continuation (create_agent)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Cursor API key
            base_url: API root (default: https://api.cursor.com/v0)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.Client(
            base_url=self.base_url,
            auth=(api_key, ""),
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._client.close()

    def __enter__(self) -> "CloudAgentClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        agent_id: str = "",
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """
        Perform a request and return the decoded JSON body.

        Raises:
            CloudAgentConnectionError: Transport failure or timeout
            CloudAgentRateLimitError: HTTP 429
            CloudAgentResponseError: Other non-2xx status or invalid JSON
        """
        entry = ApiLogEntry(
            timestamp=now_iso(),
            request_id=str(uuid.uuid4()),
            method=method,
            path=path,
            agent_id=agent_id,
        )
        start = time.monotonic()

        try:
            try:
                response = self._client.request(method, path, json=json_body)
            except httpx.HTTPError as e:
                raise CloudAgentConnectionError(
                    f"{method} {path} failed: {e}", {"error_type": type(e).__name__}
                ) from e

            entry.status_code = response.status_code

            if response.status_code == 429:
                retry_after = response.headers.get("Retry-After")
                raise CloudAgentRateLimitError(
                    f"Rate limited on {method} {path}",
                    retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
                )
            if response.is_error:
                raise CloudAgentResponseError(
                    f"{method} {path} returned HTTP {response.status_code}",
                    status_code=response.status_code,
                    body=response.text[:500],
                )

            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise CloudAgentResponseError(
                    f"{method} {path} returned invalid JSON",
                    status_code=response.status_code,
                    body=response.text[:500],
                ) from e

        except (CloudAgentConnectionError, CloudAgentResponseError) as e:
            entry.error = e.message
            entry.error_type = type(e).__name__
            logger.debug("Cloud Agent API error: %s", e)
            raise
        finally:
            entry.latency_ms = int((time.monotonic() - start) * 1000)
            api_logger.info(entry.to_json())

    # Reads

    def get_agent(self, agent_id: str) -> AgentInfo:
        """Fetch the agent's status, summary and target branch."""
        data = self._request("GET", f"/agents/{agent_id}", agent_id=agent_id)
        return AgentInfo.from_api(agent_id, data)

    def get_conversation(self, agent_id: str) -> Transcript:
        """Fetch the agent's full conversation."""
        data = self._request("GET", f"/agents/{agent_id}/conversation", agent_id=agent_id)
        return Transcript.from_api(data)

    # Control

    def stop_agent(self, agent_id: str) -> None:
        """Ask the agent to stop. Returns once the request is acknowledged."""
        self._request("POST", f"/agents/{agent_id}/stop", agent_id=agent_id)

    def send_followup(self, agent_id: str, text: str) -> None:
        """Send a follow-up instruction to the agent."""
        self._request(
            "POST",
            f"/agents/{agent_id}/followup",
            agent_id=agent_id,
            json_body={"prompt": {"text": text}},
        )

    def create_agent(
        self,
        prompt: str,
        repository: str,
        ref: str,
        branch_name: str,
        auto_create_pr: bool = False,
    ) -> AgentLaunch:
        """
        Launch a new Cloud Agent.

        Raises:
            CloudAgentResponseError: If the response carries no agent id
        """
        payload = {
            "prompt": {"text": prompt},
            "source": {"repository": repository, "ref": ref},
            "target": {"branchName": branch_name, "autoCreatePr": auto_create_pr},
        }
        data = self._request("POST", "/agents", json_body=payload)

        agent_id = data.get("id") if isinstance(data, dict) else None
        if not agent_id:
            error = "Unknown error"
            if isinstance(data, dict):
                error = str(data.get("error") or data.get("message") or error)
            raise CloudAgentResponseError(f"Agent was not created: {error}", body=str(data)[:500])

        target = data.get("target") if isinstance(data.get("target"), dict) else {}
        return AgentLaunch(
            agent_id=str(agent_id),
            url=str(target.get("url") or ""),
            branch=str(target.get("branchName") or branch_name),
        )
