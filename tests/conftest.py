import json
from unittest import mock

import pytest


def _make_response(status=200, json_data=None, text=None, headers=None):
    response = mock.Mock()
    response.status_code = status
    response.ok = 200 <= status < 400
    response.headers = headers or {}
    response.encoding = None
    if json_data is not None:
        response.json.return_value = json_data
        response.text = json.dumps(json_data)
    else:
        response.json.side_effect = ValueError("No JSON object could be decoded")
        response.text = text or ""
    return response


def _make_session(*responses):
    session = mock.MagicMock()
    session.headers = {}
    session.request.side_effect = list(responses)
    return session


@pytest.fixture
def fake_response():
    return _make_response


@pytest.fixture
def fake_session():
    return _make_session
