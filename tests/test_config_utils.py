"""
Tests for configuration defaults, environment overrides and ui_config.json.
"""
import json
import os
import sys
from unittest.mock import patch

import pytest

# Add the parent directory to the path so we can import our modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config_utils import (
    DEFAULT_ADVICE_TIMEOUT, get_provider_presets, get_advice_timeout,
    get_default_planning_inputs,
    get_default_advisor_settings, load_ui_config, save_ui_config, load_advisor_settings
)


class TestDefaults:
    """Test default values"""

    def test_planning_defaults(self):
        defaults = get_default_planning_inputs()
        assert defaults['current_age'] == 50
        assert defaults['retirement_age'] == 62
        assert defaults['safe_withdrawal_rate'] == 4.0

    def test_presets_cover_all_providers(self):
        assert set(get_provider_presets()) == {'groq', 'ollama', 'gemini', 'offline'}


class TestEnvironmentOverrides:
    """Test environment variable handling"""

    @patch.dict(os.environ, {'GROQ_API_KEY': 'gsk_test', 'GROQ_MODEL': 'llama-3.3-70b-versatile'})
    def test_groq_preset_from_env(self):
        preset = get_provider_presets()['groq']
        assert preset['api_key'] == 'gsk_test'
        assert preset['model'] == 'llama-3.3-70b-versatile'

    @patch.dict(os.environ, {'ADVICE_TIMEOUT': '15'})
    def test_timeout_from_env(self):
        assert get_advice_timeout() == 15.0

    @pytest.mark.parametrize("raw", ['soon', '-5', '0'])
    def test_invalid_timeout_falls_back(self, raw):
        with patch.dict(os.environ, {'ADVICE_TIMEOUT': raw}):
            assert get_advice_timeout() == DEFAULT_ADVICE_TIMEOUT

    @patch.dict(os.environ, {'ADVICE_PROVIDER': 'ollama', 'OLLAMA_BASE_URL': 'http://gpu-box:11434'})
    def test_provider_from_env(self):
        settings = get_default_advisor_settings()
        assert settings['provider'] == 'ollama'
        assert settings['base_url'] == 'http://gpu-box:11434'

    @patch.dict(os.environ, {'ADVICE_PROVIDER': 'carrier-pigeon'})
    def test_unknown_provider_becomes_offline(self):
        assert get_default_advisor_settings()['provider'] == 'offline'


class TestUiConfig:
    """Test ui_config.json persistence"""

    def test_missing_file_returns_empty(self, tmp_path):
        assert load_ui_config(str(tmp_path / 'missing.json')) == {}

    def test_save_and_load(self, tmp_path):
        path = str(tmp_path / 'ui_config.json')
        save_ui_config({'provider': 'ollama', 'model': 'mistral'}, path)
        assert load_ui_config(path) == {'provider': 'ollama', 'model': 'mistral'}

    def test_corrupt_file_returns_empty(self, tmp_path):
        path = tmp_path / 'ui_config.json'
        path.write_text('{not json')
        assert load_ui_config(str(path)) == {}

    def test_non_object_ignored(self, tmp_path):
        path = tmp_path / 'ui_config.json'
        path.write_text(json.dumps(['groq']))
        assert load_ui_config(str(path)) == {}

    @patch.dict(os.environ, {'ADVICE_PROVIDER': 'groq'})
    def test_advisor_settings_overlay(self, tmp_path):
        path = str(tmp_path / 'ui_config.json')
        save_ui_config({'provider': 'ollama', 'model': 'mistral', 'api_key': '', 'extra': 1}, path)

        settings = load_advisor_settings(path)
        assert settings['provider'] == 'ollama'
        assert settings['model'] == 'mistral'
        assert 'extra' not in settings
        assert settings['timeout'] == get_advice_timeout()
