from __future__ import annotations

"""Hue bridge CLIP v2 client."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional

import requests
import urllib3

from moodlight.color import clamp
from moodlight.config import HueConfig
from moodlight.emotion_provider import LightCommand


LOG = logging.getLogger(__name__)


class HueRequestError(RuntimeError):
    """Raised when the bridge keeps rejecting a request."""

    def __init__(self, status: Optional[int], text: str) -> None:
        super().__init__(f"Hue request failed ({status}): {text}")
        self.status = status
        self.text = text


def build_light_payload(command: LightCommand) -> Dict[str, Any]:
    """Build the CLIP v2 light resource body for a command."""
    x, y = command.xy
    return {
        "on": {"on": True},
        "dimming": {"brightness": clamp(command.brightness, 1, 100)},
        "color": {"xy": {"x": x, "y": y}},
        "dynamics": {"duration": int(command.transition_ms)},
    }


class HueClient:
    """Send light commands to every configured light on the bridge."""

    def __init__(
        self,
        config: HueConfig,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._base_url = f"https://{config.bridge_ip}/clip/v2/resource"
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Content-Type": "application/json",
                "hue-application-key": config.app_key,
            }
        )
        self._session.verify = config.verify_tls
        if not config.verify_tls:
            # bridges serve a self-signed certificate
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        self._sleep = sleep

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_lights(self, command: LightCommand) -> Dict[str, Optional[Exception]]:
        """Apply a command to all lights; one failing light does not stop the rest.

        Returns a mapping of light id to the error it raised, or None on success.
        """
        payload = build_light_payload(command)
        ids = list(self._config.light_ids)
        results: Dict[str, Optional[Exception]] = {}
        if not ids:
            return results

        with ThreadPoolExecutor(max_workers=min(8, len(ids))) as pool:
            futures = {light_id: pool.submit(self.request, f"/light/{light_id}", payload) for light_id in ids}
            for light_id, future in futures.items():
                try:
                    future.result()
                    results[light_id] = None
                except Exception as exc:
                    LOG.warning("Light %s update failed: %s", light_id, exc)
                    results[light_id] = exc
        return results

    def request(self, path: str, body: Dict[str, Any]) -> None:
        """PUT a body to a resource path, retrying failed attempts."""
        url = f"{self._base_url}{path}"
        attempts = max(1, int(self._config.max_attempts))
        for attempt in range(attempts):
            status: Optional[int] = None
            try:
                response = self._session.put(url, json=body, timeout=self._config.timeout_seconds)
                if response.ok:
                    return
                status = response.status_code
                text = response.text
            except requests.RequestException as exc:
                text = str(exc)

            if attempt + 1 >= attempts:
                raise HueRequestError(status, text)
            self._sleep(self._config.retry_base_seconds * (attempt + 1))

    def close(self) -> None:
        self._session.close()
