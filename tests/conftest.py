"""Shared fixtures for transgate tests."""
import io
import json

import pytest
import requests
from requests.cookies import cookiejar_from_dict
from urllib3.response import HTTPResponse

from transgate.services.freed import FreedService


FREED_URL = "https://api.freed.example.com/v1/translate"

BASE_CONFIGS = {
    "url": FREED_URL,
    "languageModel": "next-gen",
    "usageType": "translate",
    "acceptLanguage": "en-US,en;q=0.9",
    "appOsVersion": "17.4",
    "appDevice": "iPhone15,2",
    "appBuild": "1042",
    "appVersion": "2.3.1",
    "userAgent": "FreedApp/2.3.1",
    "retryCount": 2,
    "retryDelayMs": 0,
}


def make_response(status_code=200, body=b"", cookies=None, url=FREED_URL):
    """Build a requests.Response with an unread body stream, as returned
    by a ``stream=True`` request, without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    if isinstance(body, (dict, list)):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")
    response.raw = HTTPResponse(body=io.BytesIO(body), status=status_code, preload_content=False)
    response.encoding = "utf-8"
    response.url = url
    if cookies:
        response.cookies = cookiejar_from_dict(cookies)
    return response


@pytest.fixture
def freed_configs():
    """Raw configuration map accepted by FreedService."""
    return dict(BASE_CONFIGS)


@pytest.fixture
def freed_service(freed_configs):
    """FreedService with a pooled session that is closed after the test."""
    service = FreedService(freed_configs)
    yield service
    service.close()
