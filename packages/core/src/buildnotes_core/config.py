import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "target_repo": "microsoft/vscode",
    "feed_url": "https://update.code.visualstudio.com/api/commits/insider",
    "model": "openai",
    "openai_model": "gpt-4.1-mini",
    "anthropic_model": "claude-sonnet-4-20250514",
    "max_changes": 100,
    "max_body_chars": 4000,
    "lookup_workers": 4,
    "version_file": "package.json",
    "version_suffix": "-insider",
    "release_name": "VS Code Insiders",
    "tag_prefix": "insiders",
    "data_dir": "data",
    "docs_dir": "docs",
    "out_dir": ".out",
    "site_dir": "site",
    "dist_dir": "dist",
    "store": "json",
    "store_path": None,  # None = data_dir for json, .buildnotes.db for sqlite
    "instructions": None,  # None = use built-in prompt; set to a path string to override
    "release_repo": None,  # repository that receives GitHub Releases (owner/name)
}

BUILTIN_PROMPTS_DIR = Path(__file__).parent / "prompts"
_BUILTIN_INSTRUCTIONS = BUILTIN_PROMPTS_DIR / "release_notes.md"

# Environment variables that override the config file but not CLI flags.
_ENV_OVERRIDES = {
    "TARGET_REPO": "target_repo",
    "OPENAI_MODEL": "openai_model",
}


def load_config(config_path: str = ".buildnotes.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .buildnotes.yml in the current directory
      3. TARGET_REPO / OPENAI_MODEL environment variables
      4. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    for env_name, key in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            config[key] = value

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

    return config


def load_instructions(config: dict) -> str:
    """
    Load the system prompt used to write release notes.

    If ``instructions`` is set in config, loads from that path (relative to cwd).
    Otherwise falls back to the built-in prompt.
    """
    custom_path = config.get("instructions")
    if custom_path:
        p = Path(custom_path)
        if not p.exists():
            raise FileNotFoundError(f"Instructions file not found: {custom_path}")
        return p.read_text()

    if _BUILTIN_INSTRUCTIONS.exists():
        return _BUILTIN_INSTRUCTIONS.read_text()

    raise FileNotFoundError("No instructions configured and built-in prompt is missing.")
