from __future__ import annotations

from dataclasses import dataclass

import httpx

DEFAULT_PROBE_TIMEOUT = 5.0
USER_AGENT = "atk-codespace-probe/1.0"


@dataclass(frozen=True)
class ProbeResult:
    url: str
    reachable: bool
    status_code: int | None = None
    error: str | None = None

    def describe(self) -> str:
        if self.status_code is not None:
            return f"{self.url} answered HTTP {self.status_code}"
        return f"{self.url} unreachable: {self.error}"


def probe_url(
    url: str,
    *,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
    transport: httpx.BaseTransport | None = None,
) -> ProbeResult:
    """GET ``url`` once. Any HTTP answer below 500 counts as reachable."""

    try:
        with httpx.Client(
            timeout=timeout,
            follow_redirects=False,
            headers={"User-Agent": USER_AGENT},
            transport=transport,
        ) as client:
            response = client.get(url)
    except httpx.HTTPError as exc:
        return ProbeResult(url=url, reachable=False, error=str(exc) or exc.__class__.__name__)
    return ProbeResult(
        url=url,
        reachable=response.status_code < 500,
        status_code=response.status_code,
    )
