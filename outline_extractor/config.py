# outline_extractor/config.py
import os

# Distinct candidate font sizes mapped to heading levels; smaller sizes are dropped
MAX_HEADING_LEVELS = int(os.getenv("HEADING_MAX_LEVELS", "3"))

# Size signal: rounded size must exceed the page's most frequent size by this ratio
SIZE_RATIO_THRESHOLD = float(os.getenv("HEADING_SIZE_RATIO", "1.05"))

MIN_HEADING_SCORE = int(os.getenv("HEADING_MIN_SCORE", "2"))

MIN_HEADING_CHARS = int(os.getenv("HEADING_MIN_CHARS", "2"))
MAX_HEADING_CHARS = int(os.getenv("HEADING_MAX_CHARS", "100"))

# Fragments closer than font_size * factor (vertically) belong to the same heading
MERGE_LINE_FACTOR = float(os.getenv("HEADING_MERGE_LINE_FACTOR", "1.5"))
