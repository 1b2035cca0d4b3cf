from __future__ import annotations

from typing import Optional

from dotenv import find_dotenv, load_dotenv
from eliot import start_action


def load_env(override: bool = False) -> Optional[str]:
    """
    Search for .env file in the current directory and its parents.
    This lets a build hook running from a subdirectory pick up the
    project's BUFSTAGE_* settings.

    Returns:
        The path to the .env file found and loaded, or None if not found.
    """
    env_path = find_dotenv(usecwd=True)
    if env_path:
        with start_action(action_type="load_env", env_path=env_path):
            load_dotenv(env_path, override=override)
        return env_path
    return None
