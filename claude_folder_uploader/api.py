import json
from urllib.parse import urlsplit, urlunsplit

from curl_cffi import CurlMime
from curl_cffi import requests

from .curl import JSON
from .errors import FileReadError, NetworkError, RemoteRejection, UploaderError
from .models import UploadResult

# Recomputed by curl for every request
DROPPED_HEADERS = ('Content-Length', 'Accept-Encoding', 'Host')


class UploadClient:
    """Replays a copied Claude.ai request once per file.

    Keeps no state between calls: no cookie jar, no retries. Every failure is
    turned into a FAILED UploadResult by upload(); delete() and probe() raise.
    """

    TIMEOUT = 60
    IMPERSONATE = "chrome110"
    PROBE_CHARS = 100

    def __init__(self, template, timeout=TIMEOUT, impersonate=IMPERSONATE, http=None):
        self.template = template
        self.timeout = timeout
        self.impersonate = impersonate
        self.http = http or requests

    def upload(self, candidate):
        try:
            response = self._send_file(candidate, self._read(candidate))
        except RemoteRejection as e:
            return UploadResult.fail(candidate, e, http_status=e.status_code, auth_failure=e.auth_failure)
        except (FileReadError, NetworkError) as e:
            return UploadResult.fail(candidate, e)
        return UploadResult.ok(candidate, http_status=response.status_code, remote_id=_remote_id(response))

    def delete(self, remote_id):
        """Delete a document previously uploaded to the project."""
        if not self.template.supports_delete:
            raise UploaderError(f"Deleting is not supported for {self.template.target_url}")
        parts = urlsplit(self.template.target_url)
        url = urlunsplit(parts._replace(path=f"{parts.path.rstrip('/')}/{remote_id}"))
        headers = self._headers()
        headers.pop('Content-Type', None)
        self._request('DELETE', url, headers=dict(headers))

    def probe(self, candidate):
        """Check the copied session by uploading a short excerpt of one file.

        The excerpt is deleted again when the endpoint allows it.
        """
        excerpt = self._read(candidate).decode('utf-8', errors='ignore')[:self.PROBE_CHARS] + "..."
        response = self._send_file(candidate, excerpt.encode('utf-8'))
        remote_id = _remote_id(response)
        if remote_id and self.template.supports_delete:
            self.delete(remote_id)

    def _read(self, candidate):
        try:
            with open(candidate.absolute_path, 'rb') as f:
                return f.read()
        except OSError as e:
            raise FileReadError(f"Failed to read file: {e}")

    def _headers(self):
        headers = self.template.request_headers()
        for name in DROPPED_HEADERS:
            headers.pop(name, None)
        return headers

    def _send_file(self, candidate, content):
        headers = self._headers()

        if self.template.body_kind == JSON:
            payload = dict(self.template.json_body or {})
            payload['file_name'] = candidate.relative_path
            payload['content'] = content.decode('utf-8', errors='ignore')
            headers['Content-Type'] = 'application/json'
            return self._request(self.template.method, self.template.target_url,
                                 headers=dict(headers), data=json.dumps(payload))

        # the boundary in the copied Content-Type belongs to the copied body
        headers.pop('Content-Type', None)
        multipart = CurlMime()
        try:
            for name, value in self.template.form_fields:
                multipart.addpart(name=name, data=value.encode('utf-8'))
            multipart.addpart(
                name=self.template.file_field,
                content_type=candidate.mime_guess,
                filename=candidate.name,
                data=content,
            )
            return self._request(self.template.method, self.template.target_url,
                                 headers=dict(headers), multipart=multipart)
        finally:
            multipart.close()

    def _request(self, method, url, **kwargs):
        try:
            response = self.http.request(method, url, timeout=self.timeout, impersonate=self.impersonate, **kwargs)
        except requests.exceptions.Timeout as e:
            raise NetworkError(f"Request timed out after {self.timeout}s: {e}")
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Failed to send request: {e}")

        status = response.status_code
        if 200 <= status < 300:
            return response

        body = (response.text or '')[:500]
        if status == 403:
            raise RemoteRejection(status, body, "Access forbidden (403). Your session may have expired. "
                                                "Please copy a fresh curl command from Claude.ai.")
        if status == 401:
            raise RemoteRejection(status, body, "Unauthorized (401). Your authentication tokens are invalid. "
                                                "Please copy a fresh curl command from Claude.ai.")
        if status >= 500:
            raise RemoteRejection(status, body, f"Server error ({status}), probably transient. "
                                                f"Re-run the upload later. Response: {body}")
        raise RemoteRejection(status, body)


def _remote_id(response):
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        return data.get('uuid') or data.get('file_uuid')
    return None
