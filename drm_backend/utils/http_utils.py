"""
HTTP utilities for robust API calls with comprehensive error handling
"""

import json
import requests
import logging
from typing import Dict, Optional, Any
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)


class RobustHTTPClient:
    """HTTP client with a retrying session and defensive JSON parsing"""

    def __init__(self, timeout: int = 10, max_retries: int = 3):
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry strategy"""
        session = requests.Session()

        # Only idempotent reads are retried; writes surface their first failure
        retry_strategy = Retry(
            total=self.max_retries,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS"],
            backoff_factor=1,
            raise_on_status=False,
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def safe_json_parse(self, response: requests.Response, context: str = "") -> Optional[Any]:
        """
        Parse a JSON response body, returning None for empty, HTML or malformed bodies.

        Args:
            response: The HTTP response object
            context: Context information for logging (e.g., "settings", "broadcast ping")
        """
        text_content = response.text.strip() if response.text else ""
        if not text_content:
            logger.warning(f"{context} - Empty response received")
            return None

        content_type = response.headers.get('content-type', '').lower()
        if 'text/html' in content_type:
            logger.warning(f"{context} - Received HTML instead of JSON (likely error page)")
            logger.debug(f"{context} - HTML content preview: {text_content[:200]}...")
            return None

        try:
            return json.loads(text_content)
        except json.JSONDecodeError as e:
            logger.error(f"{context} - JSON Decode Error: {e.msg} at line {e.lineno} column {e.colno}")
            logger.error(f"{context} - Response preview: {text_content[:500]}")
            return None

    def request(
        self,
        method: str,
        url: str,
        context: str = "",
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Any] = None,
        **kwargs
    ) -> requests.Response:
        """Send a request on the retrying session. Network errors propagate to the caller."""
        timeout = kwargs.pop('timeout', self.timeout)
        logger.debug(f"{context} - Making {method} request to {url}")
        try:
            response = self.session.request(
                method=method,
                url=url,
                headers=headers,
                params=params,
                json=json_data,
                timeout=timeout,
                **kwargs
            )
        except requests.exceptions.Timeout:
            logger.error(f"⏰ {context} - Timeout after {timeout}s: {method} {url}")
            raise
        except requests.exceptions.RequestException as e:
            logger.error(f"❌ {context} - Request error: {e}")
            raise
        logger.debug(f"{context} - HTTP {response.status_code}")
        return response
