"""
EKAPE Grading Client Tests

The HTTP layer is replaced by canned (status, body) responses so the
two-stage lookup, XML parsing, retries and diagnostics can be checked
without the network.
"""

import asyncio
from typing import Dict, List, Tuple

import aiohttp
import pytest

from connectors.ekape import (
    NOT_FOUND_MESSAGE,
    EkapeApiError,
    EkapeClient,
    EkapeConfig,
    EkapeNotFoundError,
    EkapeResponseError,
    RetryConfig,
    parse_ekape_items,
)
from core.config import Settings


ISSUE_URL = "http://ekape.test/issueNo"
CATTLE_URL = "http://ekape.test/cattle"


def envelope(items_xml: str = "", code: str = "00", msg: str = "NORMAL SERVICE.") -> str:
    return (
        "<response>"
        f"<header><resultCode>{code}</resultCode><resultMsg>{msg}</resultMsg></header>"
        f"<body><items>{items_xml}</items></body>"
        "</response>"
    )


ISSUES_XML = envelope(
    "<item><issueNo>1001</issueNo><issueDate>20251201</issueDate>"
    "<abattNm>음성농협축산물공판장</abattNm><judgeSexNm>거세</judgeSexNm></item>"
    "<item><issueNo>1002</issueNo><issueDate>20251202</issueDate>"
    "<butchPlcNm>부천축산물공판장</butchPlcNm></item>"
)

CATTLE_XML = envelope(
    "<item><carcassNo>C-1</carcassNo><liveStockNm>한우</liveStockNm>"
    "<qulGradeNm>1++</qulGradeNm><yieldGradeNm>A</yieldGradeNm>"
    "<carcassWeight>452</carcassWeight><backfatThick>12</backfatThick></item>"
)


class CannedClient(EkapeClient):
    """EkapeClient answering from a queue of responses per URL."""

    def __init__(self, responses: Dict[str, List], **config):
        config.setdefault("api_key", "test-key")
        config.setdefault("issue_no_url", ISSUE_URL)
        config.setdefault("cattle_url", CATTLE_URL)
        config.setdefault("retry_config", RetryConfig(max_retries=2, base_delay=0))
        super().__init__(EkapeConfig(**config))
        self.responses = responses
        self.requests: List[Tuple[str, Dict[str, str]]] = []

    async def _get_text(self, url, params, timeout):
        self.requests.append((url, dict(params)))
        queue = self.responses[url]
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return await response()
        return response


class TestParseEkapeItems:

    def test_multiple_items(self):
        items = parse_ekape_items(ISSUES_XML)
        assert [item["issueNo"] for item in items] == ["1001", "1002"]
        assert items[0]["abattNm"] == "음성농협축산물공판장"

    def test_single_item(self):
        items = parse_ekape_items(CATTLE_XML)
        assert len(items) == 1
        assert items[0]["qulGradeNm"] == "1++"

    def test_zero_result_code_accepted(self):
        assert parse_ekape_items(envelope(code="0")) == []

    def test_empty_items(self):
        assert parse_ekape_items(envelope()) == []

    def test_error_result_code(self):
        with pytest.raises(EkapeResponseError) as exc_info:
            parse_ekape_items(envelope(code="30", msg="SERVICE KEY IS NOT REGISTERED ERROR."))
        assert "[30]" in str(exc_info.value)
        assert exc_info.value.result_code == "30"
        assert exc_info.value.status_code == 502

    def test_malformed_xml(self):
        with pytest.raises(EkapeResponseError):
            parse_ekape_items("<response><header>")


class TestFetchCertificate:

    def test_full_success(self):
        client = CannedClient({ISSUE_URL: [(200, ISSUES_XML)], CATTLE_URL: [(200, CATTLE_XML)]})

        data = asyncio.run(client.fetch_certificate("002-1922-0566-7"))

        assert data.animal_no == "002192205667"
        assert data.total_count == 2
        assert data.issues[0].abatt_name == "음성농협축산물공판장"
        assert data.issues[1].abatt_name == "부천축산물공판장"
        assert data.issues[0].judge_sex_name == "거세"
        # One detail call per issue, each returning one row
        assert len(data.grade_details) == 2
        assert data.grade_details[0].breed_name == "한우"
        assert data.grade_details[0].backfat_thickness == "12"
        assert data.grade_detail_diagnostic is None
        assert not data.is_partial

        stage1 = client.requests[0]
        assert stage1 == (ISSUE_URL, {"animalNo": "002192205667", "serviceKey": "test-key"})
        stage2_params = sorted(p["issueNo"] for url, p in client.requests if url == CATTLE_URL)
        assert stage2_params == ["1001", "1002"]

    def test_grade_detail_forbidden_is_partial_success(self):
        client = CannedClient({
            ISSUE_URL: [(200, ISSUES_XML)],
            CATTLE_URL: [(403, "<error>SERVICE ACCESS DENIED</error>")],
        })

        data = asyncio.run(client.fetch_certificate("002192205667"))

        assert data.total_count == 2
        assert data.grade_details == []
        assert data.is_partial
        assert "[1001] HTTP 403" in data.grade_detail_diagnostic
        assert " || " in data.grade_detail_diagnostic

    def test_grade_detail_timeout_is_diagnostic(self):
        async def slow():
            await asyncio.sleep(1)
            return 200, CATTLE_XML

        client = CannedClient(
            {ISSUE_URL: [(200, ISSUES_XML)], CATTLE_URL: [slow]},
            detail_timeout_seconds=0.01,
        )

        data = asyncio.run(client.fetch_certificate("002192205667"))

        assert data.grade_details == []
        assert "timeout" in data.grade_detail_diagnostic

    def test_grade_detail_transport_error_redacts_key(self):
        client = CannedClient({
            ISSUE_URL: [(200, ISSUES_XML)],
            CATTLE_URL: [aiohttp.ClientConnectionError("connection reset")],
        })

        data = asyncio.run(client.fetch_certificate("002192205667"))

        assert "connection reset" in data.grade_detail_diagnostic
        assert "test-key" not in data.grade_detail_diagnostic

    def test_no_record_is_not_found(self):
        client = CannedClient({ISSUE_URL: [(200, envelope())], CATTLE_URL: [(200, CATTLE_XML)]})

        with pytest.raises(EkapeNotFoundError) as exc_info:
            asyncio.run(client.fetch_certificate("002192205667"))

        assert str(exc_info.value) == NOT_FOUND_MESSAGE
        assert exc_info.value.status_code == 404
        assert not any(url == CATTLE_URL for url, _ in client.requests)

    def test_stage1_error_code_raises(self):
        client = CannedClient({ISSUE_URL: [(200, envelope(code="99", msg="LIMITED"))]})

        with pytest.raises(EkapeResponseError):
            asyncio.run(client.fetch_certificate("002192205667"))

    def test_stage1_http_error(self):
        client = CannedClient({ISSUE_URL: [(401, "unauthorized")]})

        with pytest.raises(EkapeApiError) as exc_info:
            asyncio.run(client.fetch_certificate("002192205667"))

        assert exc_info.value.status_code == 502
        assert "HTTP 401" in str(exc_info.value)

    def test_invalid_number_rejected_without_request(self):
        client = CannedClient({ISSUE_URL: [(200, ISSUES_XML)]})

        with pytest.raises(EkapeApiError) as exc_info:
            asyncio.run(client.fetch_certificate("12345"))

        assert exc_info.value.status_code == 400
        assert client.requests == []

    def test_missing_api_key(self):
        client = CannedClient({ISSUE_URL: [(200, ISSUES_XML)]}, api_key="")

        with pytest.raises(EkapeApiError) as exc_info:
            asyncio.run(client.fetch_certificate("002192205667"))

        assert "EKAPE_API_KEY" in str(exc_info.value)
        assert client.requests == []


class TestRetries:

    def test_retries_server_error_then_succeeds(self):
        client = CannedClient({
            ISSUE_URL: [(503, "busy"), (200, ISSUES_XML)],
            CATTLE_URL: [(200, CATTLE_XML)],
        })

        data = asyncio.run(client.fetch_certificate("002192205667"))

        assert data.total_count == 2
        assert [url for url, _ in client.requests].count(ISSUE_URL) == 2

    def test_retries_transport_error_then_gives_up(self):
        client = CannedClient({ISSUE_URL: [aiohttp.ClientConnectionError("refused")]})

        with pytest.raises(EkapeApiError) as exc_info:
            asyncio.run(client.fetch_certificate("002192205667"))

        assert "refused" in str(exc_info.value)
        assert len(client.requests) == 3

    def test_backoff_delay_capped(self):
        retry = RetryConfig(base_delay=1.0, max_delay=5.0, exponential_base=2.0)
        assert retry.get_delay(0) == 1.0
        assert retry.get_delay(2) == 4.0
        assert retry.get_delay(5) == 5.0


class TestConfig:

    def test_from_settings(self):
        settings = Settings(ekape_api_key="abc", ekape_detail_timeout_seconds=3.0, ekape_max_retries=4)
        config = EkapeConfig.from_settings(settings)

        assert config.api_key == "abc"
        assert config.detail_timeout_seconds == 3.0
        assert config.retry_config.max_retries == 4

    def test_from_settings_without_key(self):
        assert EkapeConfig.from_settings(Settings()).api_key == ""


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
