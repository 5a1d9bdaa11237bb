# context_compare/config.py
"""
Configuration for the Context Compare demo.

This file centralizes all tunable parameters for both query modes.
Every value can be overridden from the environment (or a .env file).
"""

import os
from pathlib import Path


# ========== LLM CONFIGURATION ==========

LLM_MODEL = os.getenv("LLM_MODEL", "claude-sonnet-4-20250514")

# Output limits per call type
ANSWER_MAX_TOKENS = int(os.getenv("ANSWER_MAX_TOKENS", "2048"))
SELECTION_MAX_TOKENS = int(os.getenv("SELECTION_MAX_TOKENS", "500"))

# Provider rejects requests with more cache breakpoints than this
MAX_CACHE_BREAKPOINTS = 4


# ========== PRICING (USD per million tokens) ==========

INPUT_PRICE_PER_MTOK = 3.00
OUTPUT_PRICE_PER_MTOK = 15.00
CACHE_WRITE_PRICE_PER_MTOK = 3.75
CACHE_READ_PRICE_PER_MTOK = 0.30


# ========== BUDGET ==========

# Hard safety ceiling for the whole process, in USD
BUDGET_LIMIT = float(os.getenv("BUDGET_LIMIT", "1.0"))


# ========== DOCUMENT UPLOAD ==========

ALLOWED_FILE_EXTENSIONS = [".txt", ".md"]
MAX_FILE_SIZE_MB = int(os.getenv("MAX_FILE_SIZE_MB", "10"))
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", "uploads"))


# ========== SERVER ==========

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))

CORS_ALLOW_ORIGINS = [
    o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")


# ========== UI ==========

API_BASE = os.getenv("API_BASE", f"http://127.0.0.1:{PORT}")


# ========== DESIGN TRADE-OFFS (DOCUMENTED) ==========

"""
TRADE-OFF DECISIONS:

1. BUDGET_LIMIT = $1.00:
   - The only proactive guard against runaway spend
   - Checked before every query, never mid-query
   - A query that starts under the limit may finish over it

2. In-memory document store:
   - Trade-off: trivial to reason about, nothing to migrate
   - Limitation: lost on restart, single instance only

3. Selection by the model itself (no embeddings):
   - Trade-off: zero extra infrastructure, one cheap extra call
   - Limitation: quality depends on filenames being descriptive

4. Every document segment marked cacheable:
   - Repeated questions over the same selection read from cache at
     a tenth of the input price
   - First query over a new selection pays the 25% cache write premium
"""
