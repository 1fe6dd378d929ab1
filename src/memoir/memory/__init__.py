"""Memory store — one JSON document holding every memory.

Layout:
    ~/.memoir/
    ├── memoir.toml                    # Optional configuration
    └── memories.json                  # {"memories": [...], "version": ..., "last_updated": ...}
"""
