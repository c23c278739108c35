import json
from unittest.mock import MagicMock


def fake_response(body, status=200):
    resp = MagicMock()
    resp.text = body if isinstance(body, str) else json.dumps(body)
    resp.status_code = status
    return resp
