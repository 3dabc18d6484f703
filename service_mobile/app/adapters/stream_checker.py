"""
Radio stream connectivity checks.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional
from urllib.parse import urlparse

import httpx

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


MAX_URL_LENGTH = 500
USER_AGENT = "TrendAnkara-Mobile/1.0"
STREAM_CONTENT_TYPES = ("audio/", "application/ogg", "video/", "application/octet-stream")


@dataclass(frozen=True)
class ProbeResult:
    is_valid: bool
    error: Optional[str] = None
    status_code: Optional[int] = None
    content_type: Optional[str] = None
    response_time_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"isValid": self.is_valid, "responseTime": self.response_time_ms}
        if self.error is not None:
            result["error"] = self.error
        if self.status_code is not None:
            result["statusCode"] = self.status_code
        if self.content_type is not None:
            result["contentType"] = self.content_type
        return result


def validate_stream_url(url: str) -> Optional[str]:
    """Return an error message for an unusable stream URL, or None."""
    if not url or not url.strip():
        return "Yayın adresi boş olamaz"
    if len(url) > MAX_URL_LENGTH:
        return f"Yayın adresi {MAX_URL_LENGTH} karakteri geçemez"
    try:
        parsed = urlparse(url)
    except ValueError:
        return "Geçersiz URL formatı"
    if parsed.scheme not in ("http", "https"):
        return "Yayın adresi HTTP veya HTTPS kullanmalıdır"
    if not parsed.hostname:
        return "Yayın adresinde geçerli bir sunucu adı olmalıdır"
    return None


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class StreamConnectivityChecker:
    """Issues HEAD requests against stream URLs.

    ``check`` reports transport failures as negative results; ``probe``
    additionally caps the whole check with a timer.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.timeout = timeout
        self.transport = transport
        self.metrics = metrics
        self.logger = get_logger("mobile.stream_checker")

    async def check(self, url: str) -> ProbeResult:
        start = time.perf_counter()
        validation_error = validate_stream_url(url)
        if validation_error:
            return ProbeResult(is_valid=False, error=validation_error, response_time_ms=_elapsed_ms(start))

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT, "Accept": "*/*"},
            ) as client:
                response = await client.head(url)
        except httpx.TimeoutException:
            return ProbeResult(
                is_valid=False,
                error=f"Bağlantı zaman aşımına uğradı ({self.timeout:g} saniye)",
                response_time_ms=_elapsed_ms(start),
            )
        except httpx.HTTPError as exc:
            return ProbeResult(is_valid=False, error=f"Ağ hatası: {exc}", response_time_ms=_elapsed_ms(start))

        elapsed = _elapsed_ms(start)
        content_type = response.headers.get("content-type", "unknown")
        if not response.is_success:
            return ProbeResult(
                is_valid=False,
                error=f"Yayın adresi {response.status_code} durum kodu döndürdü",
                status_code=response.status_code,
                content_type=content_type,
                response_time_ms=elapsed,
            )
        if not any(marker in content_type for marker in STREAM_CONTENT_TYPES):
            return ProbeResult(
                is_valid=False,
                error=f"Beklenmeyen içerik türü: {content_type}",
                status_code=response.status_code,
                content_type=content_type,
                response_time_ms=elapsed,
            )
        return ProbeResult(
            is_valid=True,
            status_code=response.status_code,
            content_type=content_type,
            response_time_ms=elapsed,
        )

    async def probe(self, url: str, timeout: float = 3.0) -> ProbeResult:
        """Bounded check: a slow or failing stream yields a negative result, never an exception."""
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(self.check(url), timeout=timeout)
        except asyncio.TimeoutError:
            result = ProbeResult(
                is_valid=False,
                error=f"Bağlantı testi {timeout:g} saniyede tamamlanamadı",
                response_time_ms=_elapsed_ms(start),
            )
        except Exception as exc:
            self.logger.error("Stream probe failed", url=url, error=str(exc))
            result = ProbeResult(is_valid=False, error=str(exc), response_time_ms=_elapsed_ms(start))

        if self.metrics is not None:
            self.metrics.increment_counter("stream_probe_total", result="ok" if result.is_valid else "failed")
            self.metrics.observe_histogram("stream_probe_duration_seconds", time.perf_counter() - start)
        if not result.is_valid:
            self.logger.warning("Stream probe negative", url=url, error=result.error)
        return result
