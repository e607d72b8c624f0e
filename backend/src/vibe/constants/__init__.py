"""Configuration constants.

Re-exports all constants for convenient importing:
    from vibe.constants import DEFAULT_TEMPERATURE, MIN_PROMPT_CHARS
"""

from vibe.constants.generation import *  # noqa: F403
from vibe.constants.llm import *  # noqa: F403
