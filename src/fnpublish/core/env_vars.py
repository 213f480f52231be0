"""Environment variable sources for the deployed function."""

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from .exceptions import EnvParsingError

log = logging.getLogger(__name__)


def parse_env_csv(spec: str) -> Dict[str, str]:
    """Parse ``K=V,K2=V2`` into a dict.

    Values may contain ``=``; only the first one separates key and value.
    Elements may be double-quoted to embed commas (``"K=a,b",K2=c``).

    Raises:
        EnvParsingError: If an element has no ``=`` or an empty key.
    """
    result: Dict[str, str] = {}
    for token in _split_csv(spec):
        if not token:
            continue
        if "=" not in token:
            raise EnvParsingError(
                f"Cannot read variables from set-env, Invalid CSV element {token}"
            )
        key, value = token.split("=", 1)
        key = key.strip()
        if not key:
            raise EnvParsingError(
                f"Cannot read variables from set-env, Invalid CSV element {token}"
            )
        result[key] = value
    return result


def _split_csv(spec: str) -> list[str]:
    tokens = []
    current = []
    quoted = False
    for char in spec:
        if char == '"':
            quoted = not quoted
        elif char == "," and not quoted:
            tokens.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    tokens.append("".join(current).strip())
    return tokens


def read_env_json(path: Path) -> Dict[str, str]:
    """Read a JSON object of variables; values are stringified.

    Raises:
        EnvParsingError: If the file is missing, not JSON or not an object.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise EnvParsingError(f"Cannot read variables from set-env-from-json, {e}") from e

    if not isinstance(data, dict):
        raise EnvParsingError(
            "Cannot read variables from set-env-from-json, expected a JSON object"
        )
    return {
        str(key): value if isinstance(value, str) else json.dumps(value)
        for key, value in data.items()
    }


def resolve_env_vars(
    set_env: Optional[str] = None, set_env_from_json: Optional[Path] = None
) -> Optional[Dict[str, str]]:
    """Combine the variable sources.

    CSV pairs override keys from the JSON file. Returns None when neither
    source is given, meaning the function's variables are left untouched.
    """
    if set_env is None and set_env_from_json is None:
        return None

    variables: Dict[str, str] = {}
    if set_env_from_json is not None:
        variables.update(read_env_json(set_env_from_json))
    if set_env is not None:
        variables.update(parse_env_csv(set_env))

    log.debug(f"Resolved environment variables: {sorted(variables)}")
    return variables
