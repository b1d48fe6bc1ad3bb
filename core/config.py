import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env (if present)
load_dotenv()

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL") or os.getenv("LLM_MODEL") or "gemini-2.0-flash"

# Upper bound on relevant sections returned for one selection
MAX_RELEVANT_SECTIONS = 5

# Client id handed to the PDF viewer
PDF_EMBED_API_KEY = os.getenv("PDF_EMBED_API_KEY") or os.getenv("NEXT_PUBLIC_PDF_EMBED_API_KEY")

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOGS_DIR = Path(os.getenv("LOGS_DIR", "logs"))
WORKSPACE_DIR = os.getenv("WORKSPACE_DIR")

PDF_MIME_TYPE = "application/pdf"
