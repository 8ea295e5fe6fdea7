import mimetypes
import os
from dataclasses import dataclass

import click

from .errors import FolderAccessError
from .ignore import IgnoreFilter

SUPPORTED_EXTENSIONS = frozenset([
    'html', 'css', 'scss', 'less', 'js', 'mjs', 'cjs', 'jsx', 'ts', 'tsx', 'vue', 'svelte',
    'py', 'pyw', 'pyx', 'pyi', 'rs', 'go', 'java', 'kt', 'c', 'h', 'cpp', 'hpp', 'cs', 'rb',
    'php', 'sh', 'sql', 'md', 'txt', 'rst', 'csv', 'json', 'yaml', 'yml', 'toml', 'ini',
    'cfg', 'xml',
])

# Extension-less dot files that are still worth uploading
SUPPORTED_NAMES = frozenset([
    '.gitignore', '.prettierrc', '.eslintrc', '.eslintignore', '.babelrc', '.browserslistrc',
    '.editorconfig', '.npmrc', 'dockerfile', 'makefile',
])

IGNORED = 'ignored'
NOT_IN_SECTIONS = 'not in selected sections'


@dataclass(frozen=True)
class CandidateFile:
    absolute_path: str
    relative_path: str
    size_bytes: int
    mime_guess: str

    @property
    def name(self):
        return os.path.basename(self.relative_path)


def format_file_size(size):
    """Format file size in human-readable format"""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size < 1024.0:
            return f"{size:.1f}{unit}"
        size /= 1024.0
    return f"{size:.1f}TB"


def guess_mime(path):
    mime, _ = mimetypes.guess_type(path)
    # .ts would otherwise be sent as video/mp2t
    if mime and mime.startswith(('text/', 'application/')):
        return mime
    return 'text/plain'


def is_supported(name, extensions=SUPPORTED_EXTENSIONS):
    lowered = name.lower()
    if lowered in SUPPORTED_NAMES:
        return True
    _, ext = os.path.splitext(lowered)
    if ext and ext[1:] in extensions:
        return True
    mime, _ = mimetypes.guess_type(lowered)
    return bool(mime and mime.startswith('text/'))


def check_folder(root):
    if not root or not os.path.exists(root):
        raise FolderAccessError(f"Folder does not exist: {root}")
    if not os.path.isdir(root):
        raise FolderAccessError(f"Not a folder: {root}")
    try:
        with os.scandir(root):
            pass
    except OSError as e:
        raise FolderAccessError(f"Folder is not readable: {root} ({e})")


class FileEnumerator:
    """Depth-first, name-ordered walk of a folder producing upload candidates."""

    def __init__(self, root, ignore_filter=None, extensions=SUPPORTED_EXTENSIONS, keep=None, sections=()):
        self.root = os.path.abspath(root)
        self.ignore_filter = ignore_filter if ignore_filter is not None else IgnoreFilter()
        self.extensions = extensions
        self.keep = keep
        self.sections = tuple(sections)

    def __iter__(self):
        for candidate, reason in self.entries():
            if reason is None:
                yield candidate

    def entries(self):
        """Yield (CandidateFile, skip_reason) pairs; skip_reason is None for upload candidates."""
        check_folder(self.root)
        visited = set()
        yield from self._walk(self.root, '', visited)

    def _walk(self, directory, prefix, visited):
        real = os.path.realpath(directory)
        if real in visited:
            return
        visited.add(real)

        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError as e:
            click.echo(click.style(f"⚠️  Skipping unreadable folder {prefix or directory}: {e}", fg='yellow'), err=True)
            return

        for entry in entries:
            relative_path = f"{prefix}{entry.name}"
            try:
                is_dir = entry.is_dir()
                is_file = not is_dir and entry.is_file()
            except OSError:
                continue

            if is_dir:
                if not self.ignore_filter.is_ignored(relative_path, is_dir=True):
                    yield from self._walk(entry.path, relative_path + '/', visited)
                continue
            if not is_file:
                continue

            if self.ignore_filter.is_ignored(relative_path):
                yield self._candidate(entry, relative_path), IGNORED
            elif not is_supported(entry.name, self.extensions):
                continue
            elif self.keep is not None and not self.keep.includes(relative_path, self.sections):
                yield self._candidate(entry, relative_path), NOT_IN_SECTIONS
            else:
                yield self._candidate(entry, relative_path), None

    def _candidate(self, entry, relative_path):
        try:
            size = entry.stat().st_size
        except OSError:
            size = 0
        return CandidateFile(
            absolute_path=entry.path,
            relative_path=relative_path,
            size_bytes=size,
            mime_guess=guess_mime(entry.name),
        )

    def total_size(self):
        return sum(candidate.size_bytes for candidate in self)
