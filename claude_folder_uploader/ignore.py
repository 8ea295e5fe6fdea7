import os
import re
from dataclasses import dataclass

import click

MANIFEST_NAME = '.claude_uploader.manifest'

# Always evaluated before the folder's own rules, so those may re-include with "!"
DEFAULT_RULES = (
    '.git/',
    'node_modules/',
    '.nuxt/',
    '.output/',
    '.data/',
    '.nitro/',
    '.cache/',
    'dist/',
    'logs/',
    '.wallet-db/',
    '.fleet/',
    '.idea/',
    'package-lock.json',
    '.DS_Store',
    '.env',
    '.env.*',
    MANIFEST_NAME,
)


@dataclass(frozen=True)
class IgnoreRule:
    pattern: str
    negated: bool
    dir_only: bool
    regex: object

    @classmethod
    def parse(cls, line):
        """Build a rule from one ignore-file line, or None for blanks and comments."""
        line = line.rstrip('\r\n')
        if not line.strip() or line.startswith('#'):
            return None
        line = line.rstrip(' ')

        negated = line.startswith('!')
        body = line[1:] if negated else line
        if body.startswith(('\\#', '\\!')):
            body = body[1:]

        dir_only = body.endswith('/')
        body = body.rstrip('/')
        if not body:
            return None

        anchored = '/' in body
        body = body.lstrip('/')
        return cls(line, negated, dir_only, _compile(body, anchored))

    def matches(self, relative_path, is_dir):
        if self.dir_only and not is_dir:
            return False
        return self.regex.match(relative_path) is not None


class IgnoreFilter:
    """Gitignore-style include/exclude decisions for paths below one folder root."""

    def __init__(self, rules=()):
        self.rules = tuple(rules)

    @classmethod
    def from_lines(cls, lines):
        return cls(rule for rule in map(IgnoreRule.parse, lines) if rule is not None)

    @classmethod
    def from_folder(cls, root, filename='.gitignore', defaults=DEFAULT_RULES):
        lines = list(defaults)
        path = os.path.join(root, filename)
        if os.path.exists(path):
            try:
                with open(path, 'r', encoding='utf-8', errors='ignore') as f:
                    lines.extend(f.read().splitlines())
            except OSError as e:
                click.echo(click.style(f"⚠️  Could not read {filename}, ignoring it: {e}", fg='yellow'), err=True)
        return cls.from_lines(lines)

    def _decide(self, relative_path, is_dir):
        ignored = False
        for rule in self.rules:
            if rule.matches(relative_path, is_dir):
                ignored = not rule.negated
        return ignored

    def is_ignored(self, relative_path, is_dir=False):
        relative_path = relative_path.replace(os.sep, '/').strip('/')
        parts = relative_path.split('/')
        # a path inside an excluded directory cannot be re-included
        for depth in range(1, len(parts)):
            if self._decide('/'.join(parts[:depth]), True):
                return True
        return self._decide(relative_path, is_dir)

    def __call__(self, relative_path, is_dir=False):
        return self.is_ignored(relative_path, is_dir)


def _compile(body, anchored):
    pieces = []
    segments = body.split('/')
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == '**':
            pieces.append('.*' if last else '(?:.*/)?')
        else:
            pieces.append(_translate_segment(segment) + ('' if last else '/'))
    prefix = '' if anchored else '(?:.*/)?'
    return re.compile('^' + prefix + ''.join(pieces) + '$')


def _translate_segment(segment):
    out = []
    i, n = 0, len(segment)
    while i < n:
        c = segment[i]
        i += 1
        if c == '*':
            while i < n and segment[i] == '*':
                i += 1
            out.append('[^/]*')
        elif c == '?':
            out.append('[^/]')
        elif c == '\\' and i < n:
            out.append(re.escape(segment[i]))
            i += 1
        elif c == '[':
            start = i
            if start < n and segment[start] in '!^':
                start += 1
            if start < n and segment[start] == ']':
                start += 1
            end = segment.find(']', start)
            if end == -1:
                out.append('\\[')
                continue
            chars = segment[i:end]
            i = end + 1
            if chars[:1] in ('!', '^'):
                chars = '^' + chars[1:]
            out.append('[' + chars.replace('\\', '\\\\') + ']')
        else:
            out.append(re.escape(c))
    return ''.join(out)
