"""
Configuration utilities for the retirement planner.
Default parameters, advisor provider presets and ui_config.json persistence.
"""

import json
import os
from dataclasses import asdict
from typing import Dict, Any

from projection import PlanningInputs


UI_CONFIG_PATH = 'ui_config.json'

DEFAULT_ADVICE_TIMEOUT = 60.0  # seconds

ADVICE_PROMPT_WORD_LIMIT = 500


def env_default(key: str, fallback: str = "") -> str:
    return os.environ.get(key, fallback)


def get_provider_presets() -> Dict[str, Dict[str, str]]:
    """Connection defaults for each advice provider, overridable by environment"""
    return {
        'groq': {
            'label': 'Groq (OpenAI-compatible chat completions)',
            'base_url': env_default('GROQ_API_URL', 'https://api.groq.com/openai/v1/chat/completions'),
            'model': env_default('GROQ_MODEL', 'llama-3.1-8b-instant'),
            'api_key': env_default('GROQ_API_KEY', ''),
        },
        'ollama': {
            'label': 'Ollama (local)',
            'base_url': env_default('OLLAMA_BASE_URL', 'http://localhost:11434'),
            'model': env_default('OLLAMA_MODEL', 'llama2'),
            'api_key': '',
        },
        'gemini': {
            'label': 'Google Gemini',
            'base_url': '',
            'model': env_default('GEMINI_MODEL', 'gemini-2.5-flash'),
            'api_key': env_default('GEMINI_API_KEY', ''),
        },
        'offline': {
            'label': 'Offline (no AI call)',
            'base_url': '',
            'model': '',
            'api_key': '',
        },
    }


def get_advice_timeout() -> float:
    """Request timeout for advice calls, from ADVICE_TIMEOUT if set"""
    raw = env_default('ADVICE_TIMEOUT', '')
    try:
        timeout = float(raw) if raw else DEFAULT_ADVICE_TIMEOUT
    except ValueError:
        print(f"Warning: ignoring invalid ADVICE_TIMEOUT value {raw!r}")
        timeout = DEFAULT_ADVICE_TIMEOUT
    return timeout if timeout > 0 else DEFAULT_ADVICE_TIMEOUT


def get_default_planning_inputs() -> Dict[str, Any]:
    """Default planning inputs as a plain dictionary for form widgets"""
    return asdict(PlanningInputs())


def get_default_advisor_settings() -> Dict[str, Any]:
    """Default advisor settings, seeded from the provider presets"""
    provider = env_default('ADVICE_PROVIDER', 'groq')
    presets = get_provider_presets()
    if provider not in presets:
        print(f"Warning: unknown ADVICE_PROVIDER {provider!r}, using offline")
        provider = 'offline'
    preset = presets[provider]
    return {
        'provider': provider,
        'base_url': preset['base_url'],
        'model': preset['model'],
        'api_key': preset['api_key'],
        'timeout': get_advice_timeout(),
    }


def load_ui_config(path: str = UI_CONFIG_PATH) -> Dict[str, Any]:
    """Load saved advisor settings from ui_config.json"""
    try:
        if os.path.exists(path):
            with open(path, 'r') as f:
                config = json.load(f)
            if isinstance(config, dict):
                return config
            print(f"Warning: {path} does not contain a JSON object, ignoring it")
    except Exception as e:
        print(f"Error loading {path}: {e}")
    return {}


def save_ui_config(config: Dict[str, Any], path: str = UI_CONFIG_PATH) -> None:
    """Save advisor settings to ui_config.json"""
    try:
        with open(path, 'w') as f:
            json.dump(config, f, indent=2)
    except Exception as e:
        print(f"Error saving {path}: {e}")


def load_advisor_settings(path: str = UI_CONFIG_PATH) -> Dict[str, Any]:
    """Advisor settings: defaults overlaid with whatever ui_config.json holds"""
    settings = get_default_advisor_settings()
    saved = load_ui_config(path)
    for key in settings:
        if saved.get(key) not in (None, ''):
            settings[key] = saved[key]
    return settings
