"""Tests for UploadClient against a fake HTTP transport."""
import pytest
from curl_cffi.requests import exceptions as curl_exceptions

from claude_folder_uploader.api import UploadClient
from claude_folder_uploader.curl import parse_curl
from claude_folder_uploader.errors import RemoteRejection, UploaderError
from claude_folder_uploader.files import CandidateFile
from claude_folder_uploader.models import Outcome

from conftest import DOCS_CURL, UPLOAD_CURL, FakeHttp, FakeResponse

DOCS_URL = 'https://claude.ai/api/organizations/org-123/projects/proj-456/docs'


def make_candidate(tmp_path, relative_path='notes/a.txt', content='hello'):
    path = tmp_path / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding='utf-8')
    return CandidateFile(str(path), relative_path, len(content.encode('utf-8')), 'text/plain')


def respond(status_code, body=None, text=None):
    return FakeHttp(lambda method, url, kwargs: FakeResponse(status_code, body, text))


def test_json_upload_success(tmp_path):
    http = respond(201, {'uuid': 'doc-1', 'file_name': 'notes/a.txt'})
    client = UploadClient(parse_curl(DOCS_CURL), timeout=12, http=http)

    result = client.upload(make_candidate(tmp_path))

    assert result.outcome is Outcome.SUCCESS
    assert result.success
    assert result.http_status == 201
    assert result.remote_id == 'doc-1'
    assert result.file.relative_path == 'notes/a.txt'

    method, url, kwargs = http.calls[0]
    assert (method, url) == ('POST', DOCS_URL)
    assert http.payloads() == [{'file_name': 'notes/a.txt', 'content': 'hello'}]
    assert kwargs['timeout'] == 12
    assert kwargs['impersonate'] == 'chrome110'
    headers = {name.lower(): value for name, value in kwargs['headers'].items()}
    assert headers['content-type'] == 'application/json'
    assert headers['cookie'] == 'sessionKey=sk-ant-abc; lastActiveOrg=org-123'
    assert 'content-length' not in headers


def test_json_upload_keeps_extra_copied_fields(tmp_path):
    curl = DOCS_CURL.replace('"content":"hi"', '"content":"hi","kind":"text"')
    http = respond(200, {'uuid': 'doc-2'})

    UploadClient(parse_curl(curl), http=http).upload(make_candidate(tmp_path, 'x.md', '# x'))

    assert http.payloads() == [{'file_name': 'x.md', 'content': '# x', 'kind': 'text'}]


def test_multipart_upload(tmp_path):
    http = respond(200, {'file_uuid': 'file-9'})
    client = UploadClient(parse_curl(UPLOAD_CURL), http=http)

    result = client.upload(make_candidate(tmp_path))

    assert result.remote_id == 'file-9'
    method, url, kwargs = http.calls[0]
    assert method == 'POST'
    assert url == 'https://claude.ai/api/org-123/upload'
    assert kwargs['multipart'] is not None
    assert 'data' not in kwargs
    assert 'content-type' not in {name.lower() for name in kwargs['headers']}


def test_success_without_json_body(tmp_path):
    result = UploadClient(parse_curl(DOCS_CURL), http=respond(204, text='')).upload(make_candidate(tmp_path))

    assert result.outcome is Outcome.SUCCESS
    assert result.remote_id is None


@pytest.mark.parametrize('status_code', [401, 403])
def test_auth_rejections(tmp_path, status_code):
    client = UploadClient(parse_curl(DOCS_CURL), http=respond(status_code, {'error': 'nope'}))

    result = client.upload(make_candidate(tmp_path))

    assert result.outcome is Outcome.FAILED
    assert result.http_status == status_code
    assert result.auth_failure
    assert str(status_code) in result.detail
    assert 'curl command' in result.detail


def test_other_client_errors_include_body(tmp_path):
    client = UploadClient(parse_curl(DOCS_CURL), http=respond(413, text='file too large'))

    result = client.upload(make_candidate(tmp_path))

    assert result.outcome is Outcome.FAILED
    assert not result.auth_failure
    assert result.detail == 'Upload failed with status: 413. Response: file too large'


def test_server_errors_are_marked_transient(tmp_path):
    result = UploadClient(parse_curl(DOCS_CURL), http=respond(502, text='bad gateway')).upload(make_candidate(tmp_path))

    assert result.outcome is Outcome.FAILED
    assert result.http_status == 502
    assert 'transient' in result.detail


@pytest.mark.parametrize('error, message', [
    (curl_exceptions.ConnectionError('connection refused'), 'Failed to send request'),
    (curl_exceptions.Timeout('too slow'), 'timed out'),
])
def test_network_errors(tmp_path, error, message):
    http = FakeHttp(lambda method, url, kwargs: error)

    result = UploadClient(parse_curl(DOCS_CURL), http=http).upload(make_candidate(tmp_path))

    assert result.outcome is Outcome.FAILED
    assert result.http_status is None
    assert message in result.detail


def test_unreadable_file_is_a_failed_result(tmp_path, fake_http):
    candidate = CandidateFile(str(tmp_path / 'gone.txt'), 'gone.txt', 0, 'text/plain')

    result = UploadClient(parse_curl(DOCS_CURL), http=fake_http).upload(candidate)

    assert result.outcome is Outcome.FAILED
    assert 'Failed to read file' in result.detail
    assert fake_http.calls == []


def test_each_upload_is_one_request(tmp_path, fake_http):
    client = UploadClient(parse_curl(DOCS_CURL), http=fake_http)

    client.upload(make_candidate(tmp_path, 'a.txt'))
    client.upload(make_candidate(tmp_path, 'b.txt'))

    assert [name['file_name'] for name in fake_http.payloads()] == ['a.txt', 'b.txt']


def test_delete(fake_http):
    UploadClient(parse_curl(DOCS_CURL), http=fake_http).delete('doc-1')

    method, url, kwargs = fake_http.calls[0]
    assert method == 'DELETE'
    assert url == DOCS_URL + '/doc-1'
    assert 'content-type' not in {name.lower() for name in kwargs['headers']}


def test_delete_not_supported_for_plain_upload_endpoint(fake_http):
    with pytest.raises(UploaderError):
        UploadClient(parse_curl(UPLOAD_CURL), http=fake_http).delete('file-1')
    assert fake_http.calls == []


def test_probe_uploads_excerpt_and_cleans_up(tmp_path, fake_http):
    candidate = make_candidate(tmp_path, 'big.txt', 'x' * 500)

    UploadClient(parse_curl(DOCS_CURL), http=fake_http).probe(candidate)

    assert [call[0] for call in fake_http.calls] == ['POST', 'DELETE']
    assert fake_http.payloads()[0]['content'] == 'x' * 100 + '...'


def test_probe_raises_on_rejection(tmp_path):
    client = UploadClient(parse_curl(DOCS_CURL), http=respond(403))

    with pytest.raises(RemoteRejection) as excinfo:
        client.probe(make_candidate(tmp_path))
    assert excinfo.value.auth_failure
