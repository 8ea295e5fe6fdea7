"""Shared fixtures: a copied Claude.ai request and a fake HTTP transport."""
import json

import pytest

DOCS_CURL = r"""curl 'https://claude.ai/api/organizations/org-123/projects/proj-456/docs' \
  -H 'accept: */*' \
  -H 'accept-language: en-US,en;q=0.9' \
  -H 'content-type: application/json' \
  -H 'cookie: sessionKey=sk-ant-abc; lastActiveOrg=org-123' \
  -H 'user-agent: Mozilla/5.0 Test' \
  --data-raw '{"file_name":"hello.txt","content":"hi"}'
"""

UPLOAD_CURL = r"""curl 'https://claude.ai/api/org-123/upload' \
  -H 'cookie: sessionKey=sk-ant-abc' \
  -F 'file=@hello.txt' \
  -F 'purpose=project'
"""


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(body) if body is not None else ''
        self.text = text

    def json(self):
        return json.loads(self.text)


class FakeHttp:
    """Stands in for curl_cffi.requests; responder(method, url, kwargs) returns a response or an exception."""

    def __init__(self, responder=None):
        self.calls = []
        self.responder = responder or (lambda method, url, kwargs: FakeResponse(201, {'uuid': 'doc-1'}))

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        result = self.responder(method, url, kwargs)
        if isinstance(result, Exception):
            raise result
        return result

    @staticmethod
    def payload_name(kwargs):
        return json.loads(kwargs['data'])['file_name']

    def payloads(self):
        return [json.loads(kwargs['data']) for method, url, kwargs in self.calls if 'data' in kwargs]


def write_files(root, files):
    for relative_path, content in files.items():
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding='utf-8')
    return root


@pytest.fixture
def docs_curl():
    return DOCS_CURL


@pytest.fixture
def fake_http():
    return FakeHttp()
