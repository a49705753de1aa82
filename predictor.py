import logging
import time
from typing import Optional

import requests

from config import Config

logger = logging.getLogger(__name__)


class PredictionError(Exception):
    pass


class PredictionUnavailableError(PredictionError):
    pass


class PredictionClient:
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 retries: Optional[int] = None, backoff: float = 1.0,
                 session: Optional[requests.Session] = None):
        """
        Client for the external image prediction service.

        base_url : service root; "/predict" is appended
        timeout  : per-request timeout in seconds
        retries  : extra attempts after the first failure
        backoff  : sleep between attempts in seconds
        """
        self.base_url = ((Config.PREDICTION_API_URL if base_url is None else base_url) or "").rstrip("/")
        self.timeout = Config.PREDICTION_TIMEOUT if timeout is None else timeout
        self.retries = Config.PREDICTION_RETRIES if retries is None else retries
        self.backoff = backoff
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def predict(self, filename: str, content: bytes, content_type: str = "application/octet-stream") -> str:
        if not self.configured:
            raise PredictionUnavailableError("PREDICTION_API_URL is not configured")

        url = f"{self.base_url}/predict"
        attempt = 0
        while True:
            try:
                resp = self.session.post(
                    url,
                    files={"image": (filename, content, content_type)},
                    timeout=self.timeout,
                )
                resp.raise_for_status()
                return self._parse(resp)
            except requests.exceptions.HTTPError as e:
                status = getattr(e.response, "status_code", None)
                if status is not None and status < 500:
                    raise PredictionError(f"Prediction service rejected the request with status {status}") from e
                logger.warning("HTTP error on %s: %s", url, e)
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError):
                logger.warning("Timeout or connection error on %s, attempt %d/%d", url, attempt + 1, self.retries + 1)
            except requests.exceptions.RequestException as e:
                raise PredictionError(f"Prediction request failed: {e}") from e
            attempt += 1
            if attempt > self.retries:
                raise PredictionError(f"Prediction service unreachable after {attempt} attempts")
            time.sleep(self.backoff)

    @staticmethod
    def _parse(resp) -> str:
        try:
            body = resp.json()
        except ValueError as e:
            raise PredictionError("Prediction service returned invalid JSON") from e
        if not isinstance(body, dict):
            raise PredictionError(f"Prediction service returned {type(body).__name__}, expected an object")
        prediction = body.get("prediction")
        if not prediction:
            raise PredictionError("Prediction service returned no prediction")
        return str(prediction)
