import os
import json
from datetime import datetime

from tzlocal import get_localzone

from .ignore import MANIFEST_NAME


class UploadManifest:
    """Documents uploaded from one folder, so they can be deleted before a re-upload."""

    def __init__(self, folder, manifest_file=MANIFEST_NAME):
        self.manifest_file = os.path.join(folder, manifest_file)
        self.manifest = self.load_manifest()

    def load_manifest(self):
        """Read the recorded document ids; an unknown folder starts empty."""
        if not os.path.exists(self.manifest_file):
            return {'files': {}, 'last_sync': None}
        with open(self.manifest_file, 'r', encoding='utf-8') as f:
            manifest = json.load(f)
        manifest.setdefault('files', {})
        manifest.setdefault('last_sync', None)
        return manifest

    def save_manifest(self):
        """Write the manifest, stamping it with the local time of this upload."""
        self.manifest['last_sync'] = datetime.now(get_localzone()).isoformat()
        with open(self.manifest_file, 'w', encoding='utf-8') as f:
            json.dump(self.manifest, f, indent=2)

    @property
    def files(self):
        return self.manifest['files']

    @property
    def last_sync(self):
        return self.manifest['last_sync']

    def record(self, results):
        """Remember every successful upload that returned a document id."""
        for result in results:
            if result.success and result.remote_id:
                self.files[result.file.relative_path] = {
                    'uuid': result.remote_id,
                    'size': result.file.size_bytes,
                    'uploaded_at': result.timestamp.isoformat(),
                }

    def forget(self, relative_path):
        self.files.pop(relative_path, None)
