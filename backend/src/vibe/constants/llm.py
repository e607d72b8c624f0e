"""LLM client configuration.

Default parameters for model calls. These are used when settings cannot be
loaded and mirror the defaults in CONFIG_SCHEMA.
"""

# =============================================================================
# Generation Defaults
# =============================================================================
# MAX_TOKENS caps generated application size. Explanations and fixes are short
# answers and use their own tighter budgets and lower temperatures.

MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.7

EXPLAIN_TEMPERATURE = 0.5
EXPLAIN_MAX_TOKENS = 500

FIX_TEMPERATURE = 0.3
FIX_MAX_TOKENS = 1000

# =============================================================================
# Availability Probes
# =============================================================================

PROBE_TIMEOUT_SECONDS = 5.0
