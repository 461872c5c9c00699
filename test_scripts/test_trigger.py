"""
Tests for the manual pipeline trigger.
"""

import httpx
import pytest

from jobalert.config import PipelineConfig
from jobalert.trigger import PipelineTrigger


def make_trigger(handler, cron_secret=None) -> tuple[PipelineTrigger, list]:
    seen = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    config = PipelineConfig(url="http://pipeline.test/api/cron/run-pipeline", cron_secret=cron_secret)
    http = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return PipelineTrigger(config, client=http), seen


@pytest.mark.asyncio
async def test_success_reports_counts():
    trigger, seen = make_trigger(lambda r: httpx.Response(200, json={
        "scraped": {"jobsScraped": 42},
        "processed": {"success": 17, "failed": 2},
    }))

    result = await trigger.run()

    assert result.success
    assert result.jobs_scraped == 42
    assert result.jobs_processed == 17
    assert result.message == "✅ Success! 42 jobs scraped, 17 processed"
    assert len(seen) == 1
    assert seen[0].method == "POST"


@pytest.mark.asyncio
async def test_missing_counts_default_to_zero():
    trigger, _ = make_trigger(lambda r: httpx.Response(200, json={"scraped": {}}))

    result = await trigger.run()

    assert result.success
    assert result.message == "✅ Success! 0 jobs scraped, 0 processed"


@pytest.mark.asyncio
async def test_authorization_only_with_secret():
    trigger, seen = make_trigger(lambda r: httpx.Response(200, json={}))
    await trigger.run()
    assert "Authorization" not in seen[0].headers

    trigger, seen = make_trigger(lambda r: httpx.Response(200, json={}), cron_secret="s3cret")
    await trigger.run()
    assert seen[0].headers["Authorization"] == "Bearer s3cret"


@pytest.mark.asyncio
async def test_error_status_uses_error_field():
    trigger, _ = make_trigger(lambda r: httpx.Response(401, json={"error": "Unauthorized"}))

    result = await trigger.run()

    assert not result.success
    assert result.message == "❌ Error: Unauthorized"


@pytest.mark.asyncio
async def test_error_status_without_error_field():
    trigger, _ = make_trigger(lambda r: httpx.Response(500, json={}))

    result = await trigger.run()

    assert not result.success
    assert result.message == "❌ Error: Failed to run pipeline"


@pytest.mark.asyncio
async def test_network_failure_collapses_to_message():
    def refuse(request):
        raise httpx.ConnectError("Connection refused", request=request)

    trigger, _ = make_trigger(refuse)

    result = await trigger.run()

    assert not result.success
    assert result.message == "❌ Error: Connection refused"
    assert result.jobs_scraped == 0


@pytest.mark.asyncio
async def test_non_json_body_is_a_failure():
    trigger, _ = make_trigger(lambda r: httpx.Response(502, text="<html>Bad Gateway</html>"))

    result = await trigger.run()

    assert not result.success
    assert result.message.startswith("❌ Error: ")
