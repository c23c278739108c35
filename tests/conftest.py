from unittest.mock import MagicMock

import pytest

from integrations.lazada_client import LazadaClient
from integrations.signing import Credentials
from tests.helpers import fake_response


@pytest.fixture
def make_client():
    """Build a LazadaClient whose session returns the given bodies in order."""
    def _make(*bodies, access_token='tok', status=200):
        client = LazadaClient(Credentials('K', 'S', access_token))
        client.session = MagicMock()
        responses = [fake_response(b, status) for b in bodies] or [fake_response({'code': '0', 'data': {}})]
        client.session.get.side_effect = responses
        client.session.post.side_effect = list(responses)
        return client
    return _make
