import json
import re
import shlex
from dataclasses import dataclass
from types import MappingProxyType
from urllib.parse import urlsplit

from requests.structures import CaseInsensitiveDict

from .errors import ParseError

USER_AGENT = ('Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) '
              'Chrome/127.0.0.0 Safari/537.36')

JSON = 'json'
MULTIPART = 'multipart'

METHOD_OPTIONS = {'-X', '--request'}
HEADER_OPTIONS = {'-H', '--header'}
COOKIE_OPTIONS = {'-b', '--cookie'}
DATA_OPTIONS = {'-d', '--data', '--data-raw', '--data-binary', '--data-ascii', '--data-urlencode'}
FORM_OPTIONS = {'-F', '--form', '--form-string'}
# Value-taking options that do not affect the replayed request
IGNORED_VALUE_OPTIONS = {
    '-o', '--output', '-u', '--user', '-x', '--proxy', '-U', '--proxy-user', '-m', '--max-time',
    '--connect-timeout', '--retry', '--retry-delay', '--retry-max-time', '-w', '--write-out',
    '--cacert', '--capath', '-E', '--cert', '--key', '-T', '--upload-file', '-K', '--config',
    '--limit-rate', '--resolve', '--interface', '-r', '--range', '-z', '--time-cond',
    '--max-redirs', '-c', '--cookie-jar', '-D', '--dump-header', '--ciphers',
}
VALUE_OPTIONS = (METHOD_OPTIONS | HEADER_OPTIONS | COOKIE_OPTIONS | DATA_OPTIONS | FORM_OPTIONS
                 | IGNORED_VALUE_OPTIONS | {'--url', '-A', '--user-agent', '-e', '--referer'})
SHORT_VALUE_OPTIONS = {option for option in VALUE_OPTIONS if len(option) == 2}

FILE_FIELD_RE = re.compile(r'name="([^"]+)";\s*filename=')

ANSI_C_ESCAPES = {
    'n': '\n', 'r': '\r', 't': '\t', 'a': '\a', 'b': '\b', 'f': '\f', 'v': '\v',
    'e': '\x1b', 'E': '\x1b', '\\': '\\', "'": "'", '"': '"', '?': '?',
}
# \xHH, \uHHHH and \UHHHHHHHH
ANSI_C_HEX_DIGITS = {'x': 2, 'u': 4, 'U': 8}
REDACTED = {'cookie', 'authorization'}


@dataclass(frozen=True)
class RequestTemplate:
    """Replayable request extracted from a copied cURL command."""

    method: str
    target_url: str
    headers: object
    cookies: object
    body_kind: str = MULTIPART
    file_field: str = 'file'
    form_fields: tuple = ()
    json_body: object = None

    def __post_init__(self):
        if not self.method:
            raise ParseError('method', "Request method is empty")
        if not self.target_url:
            raise ParseError('url', "Target URL is empty")

    @property
    def organization_id(self):
        return _path_segment(self.target_url, 'organizations')

    @property
    def project_id(self):
        return _path_segment(self.target_url, 'projects')

    @property
    def supports_delete(self):
        path = urlsplit(self.target_url).path.rstrip('/')
        return self.project_id is not None and path.endswith('/docs')

    def request_headers(self):
        """Fresh, mutable copy of the headers to send."""
        return CaseInsensitiveDict(self.headers.items())

    def redacted_headers(self):
        return [(name, '[REDACTED]' if name.lower() in REDACTED else value)
                for name, value in self.headers.items()]


def parse_curl(text):
    """Parse the text of a "Copy as cURL" capture into a RequestTemplate.

    Raises ParseError naming the missing or malformed element.
    """
    tokens = _tokenize(text)

    method = None
    url = None
    headers = CaseInsensitiveDict()
    cookie_arg = None
    data = []
    form = []

    i = 0
    while i < len(tokens):
        token = tokens[i]
        i += 1
        if token[:2] in SHORT_VALUE_OPTIONS and len(token) > 2 and not token.startswith('--'):
            option, value = token[:2], token[2:]
        elif token in VALUE_OPTIONS:
            option = token
            value = tokens[i] if i < len(tokens) else None
            i += 1
        elif token.startswith('-') and token != '-':
            continue
        else:
            if url is None:
                url = token
            continue

        if value is None:
            raise ParseError(_element_for(option), f"Option {option} is missing its value")

        if option in METHOD_OPTIONS:
            if not value.strip():
                raise ParseError('method', f"No method token after {option}")
            method = value.strip().upper()
        elif option in HEADER_OPTIONS:
            _add_header(headers, value)
        elif option in COOKIE_OPTIONS:
            # without '=' the argument names a cookie file
            if '=' in value:
                cookie_arg = value
        elif option in DATA_OPTIONS:
            data.append(value)
        elif option in FORM_OPTIONS:
            form.append(value)
        elif option == '--url':
            url = value
        elif option in ('-A', '--user-agent'):
            headers['User-Agent'] = value
        elif option in ('-e', '--referer'):
            headers['Referer'] = value

    if url is None:
        raise ParseError('url', "No URL found in curl command")
    parts = urlsplit(url)
    if parts.scheme not in ('http', 'https') or not parts.netloc:
        raise ParseError('url', f"Not an http(s) URL: {url!r}")

    if 'Cookie' in headers:
        cookies = _split_cookies(headers['Cookie'])
    elif cookie_arg:
        headers['Cookie'] = cookie_arg
        cookies = _split_cookies(cookie_arg)
    else:
        cookies = {}

    origin = f"{parts.scheme}://{parts.netloc}"
    if 'User-Agent' not in headers:
        headers['User-Agent'] = USER_AGENT
    if 'Origin' not in headers:
        headers['Origin'] = origin
    project_id = _path_segment(url, 'projects')
    if project_id and 'Referer' not in headers:
        headers['Referer'] = f"{origin}/project/{project_id}"

    body_kind, file_field, form_fields, json_body = _body_shape(url, headers, data, form)

    return RequestTemplate(
        method=method or ('POST' if data or form else 'GET'),
        target_url=url,
        headers=MappingProxyType(headers),
        cookies=MappingProxyType(cookies),
        body_kind=body_kind,
        file_field=file_field,
        form_fields=tuple(form_fields),
        json_body=MappingProxyType(json_body) if json_body is not None else None,
    )


def _tokenize(text):
    # bash line continuations
    folded = re.sub(r'\\\r?\n', ' ', (text or '').strip())
    try:
        tokens = shlex.split(_requote_ansi_c(folded))
    except ValueError as e:
        raise ParseError('command', f"Could not split curl command: {e}")
    if not tokens or tokens[0] not in ('curl', 'curl.exe'):
        raise ParseError('command', "Text does not look like a curl command")
    return tokens[1:]


def _element_for(option):
    if option in METHOD_OPTIONS:
        return 'method'
    if option in HEADER_OPTIONS:
        return 'header'
    if option == '--url':
        return 'url'
    return 'command'


def _add_header(headers, line):
    name, sep, value = line.partition(':')
    if not sep:
        # curl sends "Name;" as an empty header
        if line.endswith(';') and line[:-1].strip():
            name, value = line[:-1], ''
        else:
            raise ParseError('header', f"Malformed header line: {line!r}")
    name = name.strip()
    if not name or any(c.isspace() for c in name):
        raise ParseError('header', f"Malformed header line: {line!r}")
    headers[name] = value.strip()


def _split_cookies(raw):
    cookies = {}
    for part in raw.split(';'):
        name, sep, value = part.strip().partition('=')
        if sep and name:
            cookies[name] = value
    return cookies


def _requote_ansi_c(text):
    """Rewrite every bash $'...' word into a plain single-quoted one.

    Browsers switch to $'...' as soon as a value holds an apostrophe or a
    control character, which shlex does not understand.
    """
    out = []
    quote = None
    i = 0
    while i < len(text):
        c = text[i]
        if quote is not None:
            if c == '\\' and quote == '"' and i + 1 < len(text):
                out.append(text[i:i + 2])
                i += 2
                continue
            if c == quote:
                quote = None
            out.append(c)
            i += 1
        elif c == '\\' and i + 1 < len(text):
            out.append(text[i:i + 2])
            i += 2
        elif text.startswith("$'", i):
            value, i = _read_ansi_c(text, i + 2)
            out.append("'" + value.replace("'", "'\\''") + "'")
        else:
            if c in ('"', "'"):
                quote = c
            out.append(c)
            i += 1
    return ''.join(out)


def _read_ansi_c(text, i):
    """Decode a $'...' body starting at index i; return (value, index after the closing quote)."""
    value = []
    while i < len(text):
        c = text[i]
        if c == "'":
            return ''.join(value), i + 1
        if c != '\\' or i + 1 >= len(text):
            value.append(c)
            i += 1
            continue

        escape = text[i + 1]
        i += 2
        if escape in ANSI_C_HEX_DIGITS:
            digits = re.match('[0-9a-fA-F]{1,%d}' % ANSI_C_HEX_DIGITS[escape], text[i:])
            if digits:
                value.append(chr(int(digits.group(), 16)))
                i += digits.end()
            else:
                value.append('\\' + escape)
        elif escape in '01234567':
            digits = re.match('[0-7]{0,2}', text[i:])
            value.append(chr(int(escape + digits.group(), 8)))
            i += digits.end()
        elif escape in ANSI_C_ESCAPES:
            value.append(ANSI_C_ESCAPES[escape])
        else:
            value.append('\\' + escape)
    raise ParseError('command', "Unterminated $'...' quoting")


def _path_segment(url, name):
    segments = urlsplit(url).path.split('/')
    if name in segments:
        index = segments.index(name)
        if index + 1 < len(segments) and segments[index + 1]:
            return segments[index + 1]
    return None


def _json_object(raw):
    if not raw:
        return None
    try:
        body = json.loads(raw)
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _body_shape(url, headers, data, form):
    content_type = headers.get('Content-Type', '').lower()
    raw_body = '&'.join(data) if data else None
    file_field = 'file'
    form_fields = []

    if form:
        for item in form:
            name, sep, value = item.partition('=')
            if not sep or not name:
                raise ParseError('command', f"Malformed form field: {item!r}")
            if value.startswith(('@', '<')):
                file_field = name
            else:
                form_fields.append((name, value))
        return MULTIPART, file_field, form_fields, None

    if 'multipart/form-data' in content_type:
        match = FILE_FIELD_RE.search(raw_body or '')
        if match:
            file_field = match.group(1)
        return MULTIPART, file_field, form_fields, None

    json_body = _json_object(raw_body)
    if json_body is not None or urlsplit(url).path.rstrip('/').endswith('/docs'):
        return JSON, file_field, form_fields, json_body or {}
    return MULTIPART, file_field, form_fields, None
