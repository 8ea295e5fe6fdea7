import os
from fnmatch import fnmatchcase

KEEP_FILE = '.claudekeep'


class KeepConfig:
    """Named sections of glob patterns read from a folder's .claudekeep file.

    File format::

        frontend:
        src/components/*
        *.vue
        docs:
        README.md
    """

    def __init__(self, sections=None):
        self.patterns = dict(sections or {})

    @property
    def sections(self):
        return list(self.patterns)

    @classmethod
    def parse(cls, text):
        sections = {}
        current = None
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            if line.endswith(':'):
                current = line[:-1]
                sections.setdefault(current, [])
            elif current is not None:
                sections[current].append(line)
        return cls(sections)

    @classmethod
    def from_folder(cls, root):
        """Return the folder's KeepConfig, or None when it has no .claudekeep file."""
        path = os.path.join(root, KEEP_FILE)
        if not os.path.exists(path):
            return None
        with open(path, 'r', encoding='utf-8', errors='ignore') as f:
            return cls.parse(f.read())

    def unknown_sections(self, selected):
        return [name for name in selected if name not in self.patterns]

    def includes(self, relative_path, selected):
        if not selected:
            return True
        for section in selected:
            for pattern in self.patterns.get(section, []):
                if pattern.startswith('**/'):
                    pattern = pattern[3:]
                if fnmatchcase(relative_path, pattern) or fnmatchcase(relative_path, '*/' + pattern):
                    return True
        return False
