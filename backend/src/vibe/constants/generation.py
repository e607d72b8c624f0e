"""Code generation configuration.

Prompt limits, conversation window sizes and the fixed provider order used when
no preferred provider is requested or the preferred one is unavailable.
"""

# =============================================================================
# Prompt Validation
# =============================================================================
# Prompts outside [MIN_PROMPT_CHARS, MAX_PROMPT_CHARS] are rejected before any
# model call. Token counts are estimated as ceil(len / CHARS_PER_TOKEN).

MIN_PROMPT_CHARS = 10
MAX_PROMPT_CHARS = 2000
CHARS_PER_TOKEN = 4

# =============================================================================
# Conversation Context
# =============================================================================
# CONTEXT_TURNS turns are loaded from storage per request; only the last
# HISTORY_TURNS of them are sent to the model ahead of the new prompt.

CONTEXT_TURNS = 10
HISTORY_TURNS = 5

# =============================================================================
# Provider Selection
# =============================================================================

PROVIDER_PRIORITY = ("openai", "anthropic", "ollama")

# =============================================================================
# Stream Markers
# =============================================================================

FILE_MARKER = "// File: "
PROGRESS_KEYWORDS = ("Creating", "Generating")
COMPLETE_MESSAGE = "Code generation complete!"
