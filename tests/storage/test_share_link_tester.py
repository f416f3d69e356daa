"""
Tests for HttpShareLinkTester.

Checklist:
- errno mapping: success, wrong code, throttled (with/without proxies), unknown
- Unreadable bodies are transport errors
- Transport exceptions propagate to the trial executor
- reconfigure() routes later requests through the new proxy
- dispose() closes the session and refuses further trials
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from crack_password_pool.core.errors import TesterError
from crack_password_pool.io.tester import (
    HttpShareLinkTester,
    compose_share_message,
    create_share_link_tester,
)

from tests import DEFAULT_PROXIES, DEFAULT_SURL


def _response(body=None, status_code=200, bad_json=False):
    response = MagicMock()
    response.status_code = status_code
    if bad_json:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def tester():
    return HttpShareLinkTester(surl=DEFAULT_SURL, proxies=list(DEFAULT_PROXIES))


def test_success_errno_is_accepted(tester):
    with patch.object(tester.session, "post", return_value=_response({"errno": 0})) as post:
        result = tester.test("ab12")

    assert result.accepted
    assert result.candidate == "ab12"
    _, kwargs = post.call_args
    assert kwargs["data"]["pwd"] == "ab12"
    assert kwargs["params"]["surl"] == DEFAULT_SURL
    assert kwargs["proxies"] is None


def test_wrong_code_is_terminal(tester):
    with patch.object(tester.session, "post", return_value=_response({"errno": -9})):
        result = tester.test("zzzz")

    assert not (result.accepted or result.transport_error or result.needs_reconfiguration)
    assert result.detail == "errno=-9"


def test_throttled_rotates_through_proxies(tester):
    with patch.object(tester.session, "post", return_value=_response({"errno": -62})):
        first = tester.test("aaaa")
        second = tester.test("bbbb")
        third = tester.test("cccc")

    assert first.needs_reconfiguration and first.reconfiguration == DEFAULT_PROXIES[0]
    assert second.reconfiguration == DEFAULT_PROXIES[1]
    assert third.reconfiguration == DEFAULT_PROXIES[0]


def test_throttled_without_proxies_is_transport_error():
    tester = HttpShareLinkTester(surl=DEFAULT_SURL)
    with patch.object(tester.session, "post", return_value=_response({"errno": -62})):
        result = tester.test("aaaa")

    assert result.transport_error
    assert not result.needs_reconfiguration


@pytest.mark.parametrize(
    "response",
    [_response({"errno": -12}), _response(bad_json=True, status_code=502), _response(["x"]), _response({})],
)
def test_unexpected_answers_are_transport_errors(tester, response):
    with patch.object(tester.session, "post", return_value=response):
        result = tester.test("aaaa")

    assert result.transport_error


def test_transport_exceptions_propagate(tester):
    with patch.object(tester.session, "post", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(requests.ConnectionError):
            tester.test("aaaa")


def test_reconfigure_sets_request_proxy(tester):
    tester.reconfigure(DEFAULT_PROXIES[1])

    with patch.object(tester.session, "post", return_value=_response({"errno": -9})) as post:
        tester.test("aaaa")

    _, kwargs = post.call_args
    assert kwargs["proxies"] == {"http": DEFAULT_PROXIES[1], "https": DEFAULT_PROXIES[1]}
    assert tester.current_proxy == DEFAULT_PROXIES[1]

    tester.reconfigure(None)
    assert tester.current_proxy is None


def test_dispose_closes_session_and_refuses_trials(tester):
    with patch.object(tester.session, "close") as close:
        tester.dispose()
        tester.dispose()

    assert tester.is_disposed()
    close.assert_called_once()
    with pytest.raises(TesterError):
        tester.test("aaaa")


def test_surl_is_required():
    with pytest.raises(TesterError):
        HttpShareLinkTester(surl="")


def test_factory_reads_config_section():
    tester = create_share_link_tester(
        {
            "surl": DEFAULT_SURL,
            "timeout_seconds": 3,
            "wrong_code_errnos": [-9, -8],
            "proxies": ["http://p:1"],
            "headers": {"X-Test": "1"},
        }
    )

    assert tester.timeout_seconds == 3.0
    assert tester.wrong_code_errnos == {-9, -8}
    assert tester.success_errnos == {0}
    assert tester.proxies == ["http://p:1"]
    assert tester.session.headers["X-Test"] == "1"
    assert tester.session.headers["Referer"].endswith(DEFAULT_SURL)


def test_compose_share_message():
    assert compose_share_message("XyZ", "ab12") == "https://pan.baidu.com/s/1XyZ extraction code: ab12"
