import os
import json

DEFAULTS = {
    'workers': 1,
    'timeout': 60,
    'ignore_file': '.gitignore',
}


class ConfigManager:
    def __init__(self, config_file='claude_uploader.config', curl_file='claude_uploader.curl'):
        self.config_file = config_file
        self.curl_file = curl_file

    def save_config(self, workers=None, timeout=None, ignore_file=None):
        config = self.load_config()
        updates = {'workers': workers, 'timeout': timeout, 'ignore_file': ignore_file}
        config.update({key: value for key, value in updates.items() if value is not None})
        with open(self.config_file, 'w') as f:
            json.dump(config, f, indent=2)
        return config

    def load_config(self):
        config = dict(DEFAULTS)
        if os.path.exists(self.config_file):
            with open(self.config_file, 'r') as f:
                config.update(json.load(f))
        return config

    def save_curl(self, curl_text):
        with open(self.curl_file, 'w', encoding='utf-8') as f:
            f.write(curl_text.strip() + '\n')

    def load_curl(self):
        """Return the saved cURL command, or None when 'init' was never run."""
        if os.path.exists(self.curl_file):
            with open(self.curl_file, 'r', encoding='utf-8') as f:
                return f.read()
        return None
