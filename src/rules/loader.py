import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import ValidationError

from src.rules.models import Rules

# Secrets and deployment-specific values can be supplied without editing rules.yaml.
ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "BOARDS_SERVER_ROOT": ("server", "server_root"),
    "BOARDS_FROM_EMAIL": ("email", "from_email"),
    "BOARDS_FROM_NAME": ("email", "from_name"),
    "BOARDS_EMAIL_TEMPLATES_PATH": ("email", "templates_path"),
    "BOARDS_POSTMARK_API_TOKEN": ("email", "postmark", "api_token"),
    "BOARDS_SMTP_SERVER": ("email", "smtp", "server"),
    "BOARDS_SMTP_PORT": ("email", "smtp", "port"),
    "BOARDS_SMTP_USERNAME": ("email", "smtp", "username"),
    "BOARDS_SMTP_PASSWORD": ("email", "smtp", "password"),
    "BOARDS_SMTP_USE_TLS": ("email", "smtp", "use_tls"),
}


def apply_env_overrides(data: dict, environ: Mapping[str, str] | None = None) -> dict:
    """Overlay BOARDS_* environment variables onto raw rules data."""
    env = os.environ if environ is None else environ

    for var, path in ENV_OVERRIDES.items():
        value = env.get(var)
        if value is None or value == "":
            continue
        node = data
        for key in path[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[path[-1]] = value
    return data


def load_rules(path: Path, environ: Mapping[str, str] | None = None) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if YAML or schema invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Rules file must contain a mapping at the top level")

    data = apply_env_overrides(data, environ)

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        # Re-raise with a clear message for the caller/logs
        raise ValueError(f"Rules validation failed:\n{e}") from e
