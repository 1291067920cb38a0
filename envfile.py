"""Load KEY=VALUE pairs from an optional .env file into the environment."""

import logging
import os

logger = logging.getLogger(__name__)

QUOTES = ('"', "'")


class ConfigReadError(Exception):
    """The .env file exists but could not be read."""


def parse_line(line):
    """
    Parse one .env line.

    Args:
        line (str): Raw line from the file

    Returns:
        tuple: (key, value), or None for blank, comment and malformed lines
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None

    key, sep, value = line.partition("=")
    if not sep:
        return None

    key = key.strip()
    if not key:
        return None
    value = value.strip()
    # Only one matching pair comes off, everything inside is kept literally
    if len(value) >= 2 and value[0] in QUOTES and value[-1] == value[0]:
        value = value[1:-1]
    return key, value


def load_env_file(path=".env", environ=None):
    """
    Copy variables from a .env file into the process environment.

    Variables that are already set to a non-empty value are left alone, so
    the shell always wins over the file. A missing file is not an error.

    Args:
        path (str): Location of the .env file
        environ (dict): Mapping to update, defaults to os.environ

    Returns:
        dict: The variables that were actually applied

    Raises:
        ConfigReadError: If the file exists but cannot be read
    """
    if environ is None:
        environ = os.environ

    try:
        with open(path, encoding="utf-8") as f:
            pairs = [parse_line(line) for line in f]
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigReadError(str(e)) from e

    applied = {}
    for pair in pairs:
        if pair is None:
            continue
        key, value = pair
        if environ.get(key):
            continue
        environ[key] = value
        applied[key] = value

    logger.debug(f"Applied {len(applied)} variable(s) from {path}")
    return applied
