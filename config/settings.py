"""Central configuration loader for the Hook Studio workflow service."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Base paths
PROJECT_ROOT = Path(__file__).parent.parent
SCHEMAS_DIR = PROJECT_ROOT / "config" / "schemas"
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", str(PROJECT_ROOT / "output")))

# Environment
ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Schema file paths
PROJECT_SCHEMA = SCHEMAS_DIR / "project.schema.json"

# Project storage: "memory" or "file" (one JSON document per project under OUTPUT_DIR)
PROJECT_BACKEND = os.getenv("PROJECT_BACKEND", "memory").lower()

# Workflow stage order per flow (for status-bar navigation)
SINGLE_FLOW_ORDER = [
    "inputting",
    "hook_selection",
    "generating",
    "complete",
]

CHANNEL_FLOW_ORDER = [
    "inputting",
    "hook_text",
    "hook_verbal",
    "hook_visual",
    "hook_overview",
    "generating",
    "complete",
]


# Sub-task trackers shown while content is being generated
DEFAULT_AGENTS = [
    ("Script Architect", "Crafting your narrative structure"),
    ("Hook Engineer", "Designing attention-grabbing openers"),
    ("Visual Director", "Planning shot compositions"),
    ("B-Roll Scout", "Finding supporting footage"),
    ("Tech Specialist", "Optimizing platform specs"),
    ("Caption Writer", "Generating accessible text"),
]

# LLM configuration (generative collaborator)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "2048"))
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.8"))
LLM_ENABLED = os.getenv("LLM_ENABLED", "true").lower() in ("true", "1", "yes")
